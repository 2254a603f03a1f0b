"""Dependency wiring for the resolver chain.

Components receive their configuration by injection; this module makes the
app's choices of which components to build from one RepositoryConfig.
"""

from .module_resolution.cache_store import LocalCacheStore
from .module_resolution.descriptor import ModuleXmlParser
from .module_resolution.fetcher import ModuleFetcher
from .module_resolution.repository import RemoteRepositoryClient
from .module_resolution.resolvers import LocalModuleResolver
from .module_resolution.resolvers import RemoteModuleResolver
from .settings import RepositoryConfig


def create_module_fetcher(config: RepositoryConfig) -> ModuleFetcher:
    """Fetcher writing into config.cache_root."""
    return ModuleFetcher(
        config,
        cache=LocalCacheStore(config.cache_root),
        repository=RemoteRepositoryClient(config),
        parser=ModuleXmlParser(),
    )


def create_module_resolver(config: RepositoryConfig) -> RemoteModuleResolver:
    """Full chain: local roots (cache first), remote fetch on a miss.

    Returns:
        RemoteModuleResolver whose primary resolver searches config.local_roots
    """
    parser = ModuleXmlParser()
    local = LocalModuleResolver(config.local_roots, parser=parser)
    return RemoteModuleResolver(local, create_module_fetcher(config))
