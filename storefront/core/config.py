"""
Configuration management for the storefront cart service.

Loads settings from the YAML config file, lets environment variables override
them, and provides typed access.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()


def _project_root() -> Path:
    """Return project root (parent of the storefront package)."""
    return Path(__file__).resolve().parent.parent.parent


DEFAULT_CONFIG_PATH = _project_root() / "config" / "default.yaml"

DEV_ENVIRONMENTS = ("development", "dev", "")


@dataclass
class StorefrontConfig:
    """Configuration for the cart service."""

    # Persistence
    database_url: str = "sqlite:///./storefront.db"
    database_echo: bool = False

    # Media / image normalization
    cloudinary_cloud_name: str = "demo"
    placeholder_url: str = "https://res.cloudinary.com/demo/image/upload/sample.jpg"
    placeholder_width: int = 800
    placeholder_height: int = 600

    # Identity injected by the upstream auth layer
    user_id_header: str = "X-User-Id"

    # Runtime
    env: str = "development"

    @property
    def is_development(self) -> bool:
        return self.env.lower() in DEV_ENVIRONMENTS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StorefrontConfig":
        database_config = data.get('database', {}) or {}
        media_config = data.get('media', {}) or {}
        auth_config = data.get('auth', {}) or {}
        server_config = data.get('server', {}) or {}

        defaults = cls()
        return cls(
            database_url=database_config.get('url', defaults.database_url),
            database_echo=bool(database_config.get('echo', defaults.database_echo)),
            cloudinary_cloud_name=media_config.get('cloudinary_cloud_name', defaults.cloudinary_cloud_name),
            placeholder_url=media_config.get('placeholder_url', defaults.placeholder_url),
            placeholder_width=int(media_config.get('placeholder_width', defaults.placeholder_width)),
            placeholder_height=int(media_config.get('placeholder_height', defaults.placeholder_height)),
            user_id_header=auth_config.get('user_id_header', defaults.user_id_header),
            env=str(server_config.get('env', defaults.env)),
        )

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> "StorefrontConfig":
        """Load configuration from YAML file, then apply environment overrides."""
        path = config_path or DEFAULT_CONFIG_PATH
        data: Dict[str, Any] = {}
        if path.exists():
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}
        return cls.from_dict(data).with_env_overrides()

    def with_env_overrides(self) -> "StorefrontConfig":
        """Environment wins over the YAML file for deploy-specific settings."""
        self.database_url = os.getenv("DATABASE_URL") or self.database_url
        self.cloudinary_cloud_name = os.getenv("CLOUDINARY_CLOUD_NAME") or self.cloudinary_cloud_name
        self.user_id_header = os.getenv("USER_ID_HEADER") or self.user_id_header
        self.env = os.getenv("ENV", self.env)
        return self


# Global config instance
_config: Optional[StorefrontConfig] = None


def get_config() -> StorefrontConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = StorefrontConfig.from_yaml()
    return _config


def set_config(config: StorefrontConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
