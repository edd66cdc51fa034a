"""Application configuration.

AppConfig is a frozen dataclass: immutable after creation, no string-key
dict lookups.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, port=3000, database_url="sqlite:///blog.db")
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    workers: int = 1
    log_level: str = "info"

    # Templates (None disables kida; handlers then return JSON or Response)
    template_dir: str | Path | None = None
    autoescape: bool = True

    # Persistence: when set, the app owns a Database and a DatabaseStore
    database_url: str | None = None
    database_echo: bool = False

    # Limits
    max_content_length: int = 16 * 1024 * 1024  # 16 MB
