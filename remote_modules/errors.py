"""Exception hierarchy for remote-modules."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .module_resolution.identifier import ModuleIdentifier


class ConfigurationError(Exception):
    """Repository configuration is missing or invalid."""


class ModuleLoadError(Exception):
    """Base exception for all module-level failures."""

    def __init__(self, message: str, identifier: ModuleIdentifier | None = None):
        super().__init__(message)
        self.identifier = identifier


class ModuleNotFoundError(ModuleLoadError):
    """Module is not present in any local root."""


class DescriptorParseError(ModuleLoadError):
    """module.xml exists but could not be parsed."""


class ModuleFetchError(ModuleLoadError):
    """A fetched artifact could not be persisted, or a cached descriptor could not be read."""

    def __init__(self, identifier: ModuleIdentifier, cause: BaseException):
        super().__init__(f"Cannot fetch remote resource: {identifier} ({cause})", identifier)
        self.cause = cause


class CacheWriteError(OSError):
    """Writing an artifact into the local cache failed."""

    def __init__(self, path: Path, cause: BaseException):
        super().__init__(f"Failed to write {path}: {cause}")
        self.path = path
        self.cause = cause
