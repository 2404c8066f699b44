"""
Configuration loading and validation.

Loads client configuration from a YAML file. Every section has defaults, so
an empty file (or no file at all, via ``ClientConfig()``) is valid.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

import structlog
import yaml
from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    base_url: str = "http://localhost:8000"
    verify_tls: bool = True
    request_timeout_seconds: float = 30


class ViewConfig(BaseModel):
    map_center: tuple[float, float] = (44.0, 141.3)
    map_zoom: int = 5
    map_focus_zoom: int = 13
    confirmation_seconds: float = 3.0
    admin_page_size: int = Field(default=25, ge=1, le=100)


class LoggingConfig(BaseModel):
    level: str = "info"
    format: Literal["json", "text"] = "json"


class ClientConfig(BaseModel):
    server: ServerConfig = Field(default_factory=ServerConfig)
    views: ViewConfig = Field(default_factory=ViewConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: str | Path) -> ClientConfig:
    """Load and validate client configuration from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    return ClientConfig.model_validate(raw)


def configure_logging(config: LoggingConfig) -> None:
    """Configure structlog with the configured level and format."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if config.format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, config.level.upper(), logging.INFO)
        ),
    )
