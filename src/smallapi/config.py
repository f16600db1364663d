"""Application configuration.

AppConfig and SessionConfig are frozen dataclasses: immutable after
creation, with a default for every field.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    Override what you need::

        config = AppConfig(debug=True, port=3000, secret_key="s3cr3t")
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = False
    server: str = "pounce"  # "pounce" or "builtin"

    # Security (signs session cookies when set)
    secret_key: str = ""

    # Templates
    template_dir: str | Path | None = None

    # Limits
    max_content_length: int = 16 * 1024 * 1024  # 16 MB

    # WebSocket
    websocket_queue_size: int = 256
    websocket_max_message_size: int = 10_485_760  # 10 MB

    # Shutdown
    shutdown_timeout: float = 10.0


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Session cookie and lifetime settings."""

    cookie_name: str = "session_id"
    max_age: int = 86400  # seconds of inactivity before a bag is swept
    path: str = "/"
    secure: bool = False
    httponly: bool = True
    samesite: str = "lax"
    sweep_interval: float = 3600.0
