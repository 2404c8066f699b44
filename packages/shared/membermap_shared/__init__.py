"""Schemas shared between the Member Map server and its client."""

__version__ = "0.1.0"
