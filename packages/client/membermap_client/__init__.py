"""Member Map client: session, data gateway and per-screen view models."""

from .admin import AdminConsole
from .config import ClientConfig, configure_logging, load_config
from .directory import DirectoryView
from .errors import AccessDenied, AuthenticationRequired, GatewayError, NotFound, SignUpRejected
from .gateway import DataGateway
from .profile import ProfileEditor
from .session import Session

__version__ = "0.1.0"

__all__ = [
    "AccessDenied",
    "AdminConsole",
    "AuthenticationRequired",
    "ClientConfig",
    "DataGateway",
    "DirectoryView",
    "GatewayError",
    "NotFound",
    "ProfileEditor",
    "Session",
    "SignUpRejected",
    "configure_logging",
    "load_config",
]
