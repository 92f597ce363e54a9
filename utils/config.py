"""
Configuration management.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    debug: bool = field(default_factory=lambda: _env_flag("DEBUG", "false"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    # Reference data
    reference_api_url: Optional[str] = field(
        default_factory=lambda: os.getenv("REFERENCE_API_URL") or None
    )
    request_timeout: float = field(default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT", "10")))

    # Forms
    check_option_membership: bool = field(
        default_factory=lambda: _env_flag("CHECK_OPTION_MEMBERSHIP", "true")
    )
    seed_default_templates: bool = field(
        default_factory=lambda: _env_flag("SEED_DEFAULT_TEMPLATES", "true")
    )

    # Data
    data_dir: Optional[str] = field(default_factory=lambda: os.getenv("DATA_DIR") or None)

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    @property
    def templates_path(self) -> Optional[str]:
        """JSON file for form templates, None keeps them in memory."""
        return str(Path(self.data_dir) / "form_templates.json") if self.data_dir else None

    @property
    def listings_path(self) -> Optional[str]:
        """JSON file for listings and their logbooks."""
        return str(Path(self.data_dir) / "listings.json") if self.data_dir else None

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "log_level": self.log_level,
            "reference_api_url": self.reference_api_url,
            "request_timeout": self.request_timeout,
            "check_option_membership": self.check_option_membership,
            "seed_default_templates": self.seed_default_templates,
            "data_dir": self.data_dir,
        }
