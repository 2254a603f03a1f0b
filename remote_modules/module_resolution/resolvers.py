"""Module resolver implementations.

- LocalModuleResolver: filesystem-only lookup across local module roots
- SystemModuleResolver: in-process answer for the bootstrap SYSTEM module
- RemoteModuleResolver: wraps a primary resolver, fetching into the cache on a miss
"""

import logging
import sys
from pathlib import Path
from typing import Protocol

from ..errors import ModuleNotFoundError
from .descriptor import DescriptorParser
from .descriptor import ModuleDescriptor
from .descriptor import ModuleXmlParser
from .fetcher import ModuleFetcher
from .identifier import SYSTEM
from .identifier import ModuleIdentifier
from .paths import DESCRIPTOR_NAME
from .paths import compose_local_path

logger = logging.getLogger(__name__)


class ModuleResolver(Protocol):
    """Resolves an identifier to a locally available module.

    Implementations return None or raise ModuleNotFoundError when the module
    is not present, and raise ModuleLoadError for any other failure.
    """

    def resolve(self, identifier: ModuleIdentifier) -> ModuleDescriptor | None: ...


class LocalModuleResolver:
    """Filesystem-only resolution over an ordered list of module roots.

    Resolution order (first match wins): roots in the order given.
    """

    def __init__(self, roots: list[Path], parser: DescriptorParser | None = None):
        """Initialize with module roots.

        Args:
            roots: Directories laid out as <name with separators>/<slot>/module.xml
            parser: Descriptor parser; ModuleXmlParser if None
        """
        self.roots = [Path(r) for r in roots]
        self.parser = parser or ModuleXmlParser()

    def resolve(self, identifier: ModuleIdentifier) -> ModuleDescriptor:
        """Find and parse a module descriptor.

        Raises:
            ModuleNotFoundError: No root contains the module
            DescriptorParseError: module.xml is malformed
        """
        local_path = compose_local_path(identifier)
        for root in self.roots:
            module_dir = root / local_path
            descriptor_path = module_dir / DESCRIPTOR_NAME
            if not descriptor_path.is_file():
                continue

            logger.debug(f"[module:resolve] {identifier} -> {module_dir}")
            with descriptor_path.open("rb") as stream:
                resource_paths = self.parser.parse_resource_paths(stream, identifier)
            return ModuleDescriptor(
                identifier=identifier,
                descriptor_path=descriptor_path,
                root=module_dir,
                resource_paths=tuple(resource_paths),
            )

        searched = ", ".join(str(r) for r in self.roots) or "(no roots)"
        raise ModuleNotFoundError(f"Module '{identifier}' not found in local roots: {searched}", identifier)

    def __repr__(self) -> str:
        return f"LocalModuleResolver({len(self.roots)} roots)"


class SystemModuleResolver:
    """Synthetic descriptor for the running interpreter.

    Its resources are the existing sys.path entries, in import order.
    """

    def resolve(self, identifier: ModuleIdentifier) -> ModuleDescriptor | None:
        if identifier != SYSTEM:
            return None
        entries = tuple(p for p in sys.path if p and Path(p).exists())
        return ModuleDescriptor(identifier=SYSTEM, descriptor_path=None, root=None, resource_paths=entries)

    def __repr__(self) -> str:
        return "SystemModuleResolver()"


class RemoteModuleResolver:
    """Primary resolver first, remote fetch on a miss, then the primary again.

    The SYSTEM module is always answered in-process and never fetched.
    Hard failures from the primary resolver (anything but "not found") propagate.
    """

    def __init__(
        self,
        delegate: ModuleResolver,
        fetcher: ModuleFetcher,
        system_resolver: ModuleResolver | None = None,
    ):
        """Initialize remote resolver.

        Args:
            delegate: Primary resolver, normally a LocalModuleResolver over the cache root
            fetcher: Fetcher that populates the delegate's cache root
            system_resolver: Resolver for SYSTEM; SystemModuleResolver if None

        Raises:
            ValueError: delegate is None
        """
        if delegate is None:
            raise ValueError("Null delegate")
        self.delegate = delegate
        self.fetcher = fetcher
        self.system_resolver = system_resolver or SystemModuleResolver()

    def resolve(self, identifier: ModuleIdentifier) -> ModuleDescriptor | None:
        """Resolve a module, fetching it from the repository if needed.

        Returns:
            ModuleDescriptor, or None if the module exists neither locally nor remotely
            (or was fetched but the primary resolver still does not accept it)

        Raises:
            ModuleLoadError: Primary resolver failed for a reason other than "not found"
            ModuleFetchError: A fetched artifact could not be persisted
        """
        if identifier == SYSTEM:
            return self.system_resolver.resolve(identifier)

        if (descriptor := self._resolve_locally(identifier)) is not None:
            return descriptor

        logger.debug(f"[module:resolve] {identifier} -> remote")
        if not self.fetcher.fetch_module(identifier):
            return None
        return self._resolve_locally(identifier)

    def _resolve_locally(self, identifier: ModuleIdentifier) -> ModuleDescriptor | None:
        try:
            return self.delegate.resolve(identifier)
        except ModuleNotFoundError:
            return None

    def __repr__(self) -> str:
        return f"RemoteModuleResolver({self.delegate!r}, url: {self.fetcher.repository.root_url})"
