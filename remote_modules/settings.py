"""Repository configuration.

Built once at startup by ``load_config`` and passed into the resolver chain.
Precedence, lowest first:
- Field defaults
- ``remote_modules:`` section of a settings.yaml file
- Environment variables (MODULES_*, MODULEPATH)
- Explicit overrides (CLI options)
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError
from pydantic import field_validator

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_ROOT_URL = "http://www.jboss.org/jbossas/modules/"
DEFAULT_VERSION = "trunk"
SETTINGS_SECTION = "remote_modules"

# Environment variable -> config field
_ENV_FIELDS = {
    "MODULES_REMOTE_ROOT_URL": "root_url",
    "MODULES_REMOTE_VERSION": "version",
    "MODULES_CACHE_ROOT": "cache_root",
    "MODULES_REMOTE_TIMEOUT": "timeout",
    "MODULES_REMOTE_MAX_ATTEMPTS": "max_attempts",
    "MODULES_REMOTE_DOWNLOAD_TIMEOUT": "download_timeout",
}


class RepositoryConfig(BaseModel):
    """Remote repository and local cache settings."""

    model_config = ConfigDict(frozen=True)

    root_url: str = Field(DEFAULT_ROOT_URL, description="Repository root URL")
    version: str = Field(DEFAULT_VERSION, description="Repository version tag, first segment of every remote path")
    cache_root: Path = Field(..., description="Directory fetched modules are cached in")
    module_path: tuple[Path, ...] = Field(default=(), description="Extra read-only module roots, searched after the cache")
    timeout: float = Field(default=30.0, gt=0, description="Connect and per-read timeout in seconds")
    download_timeout: float | None = Field(
        default=300.0, gt=0, description="Wall-clock limit on downloading one artifact body; None disables it"
    )
    max_attempts: int = Field(default=3, ge=1, description="Attempts per request, including the first")
    backoff_factor: float = Field(default=0.5, ge=0, description="Retry delay = backoff_factor * 2^attempt")
    max_backoff: float = Field(default=10.0, ge=0, description="Upper bound on a single retry delay")

    @field_validator("root_url")
    @classmethod
    def _normalize_root_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("root_url must not be empty")
        return value if value.endswith("/") else value + "/"

    @field_validator("cache_root")
    @classmethod
    def _expand_cache_root(cls, value: Path) -> Path:
        return value.expanduser()

    @field_validator("module_path")
    @classmethod
    def _expand_module_path(cls, value: tuple[Path, ...]) -> tuple[Path, ...]:
        return tuple(p.expanduser() for p in value)

    @field_validator("version")
    @classmethod
    def _strip_version(cls, value: str) -> str:
        value = value.strip().strip("/")
        if not value:
            raise ValueError("version must not be empty")
        return value

    @property
    def local_roots(self) -> list[Path]:
        """Roots searched by the local resolver: the cache first, then module_path."""
        roots = [self.cache_root]
        roots.extend(p for p in self.module_path if p != self.cache_root)
        return roots


def _read_settings_file(settings_file: Path) -> dict[str, Any]:
    """Read the remote_modules section of a YAML settings file."""
    try:
        with open(settings_file, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read settings file {settings_file}: {e}") from e

    if not data:
        return {}
    section = data.get(SETTINGS_SECTION) if isinstance(data, dict) else None
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"'{SETTINGS_SECTION}' in {settings_file} must be a mapping")
    return dict(section)


def _read_environment(environ: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for env_key, field_name in _ENV_FIELDS.items():
        if env_value := environ.get(env_key):
            values[field_name] = env_value

    if module_path := environ.get("MODULEPATH"):
        roots = [Path(p) for p in module_path.split(os.pathsep) if p]
        if roots:
            values["module_path"] = tuple(roots)
            values.setdefault("cache_root", roots[0])
    return values


def load_config(
    settings_file: Path | None = None,
    environ: Mapping[str, str] | None = None,
    **overrides: Any,
) -> RepositoryConfig:
    """Build the repository configuration.

    Args:
        settings_file: Optional settings.yaml with a ``remote_modules:`` section
        environ: Environment mapping (defaults to os.environ)
        **overrides: Field values taking precedence over everything else; None values are ignored

    Returns:
        Validated RepositoryConfig

    Raises:
        ConfigurationError: No cache root configured, unreadable settings file, or invalid values
    """
    environ = os.environ if environ is None else environ

    values: dict[str, Any] = {}
    if settings_file is not None:
        values.update(_read_settings_file(settings_file))
    values.update(_read_environment(environ))
    values.update({k: v for k, v in overrides.items() if v is not None})

    if not values.get("cache_root"):
        raise ConfigurationError(
            "No module cache root configured.\n"
            "Set MODULES_CACHE_ROOT or MODULEPATH, add 'cache_root' under "
            f"'{SETTINGS_SECTION}:' in settings.yaml, or pass --cache-root."
        )

    try:
        config = RepositoryConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid repository configuration:\n{e}") from e

    logger.debug(f"Repository config: {config.root_url}{config.version}/ -> {config.cache_root}")
    return config
