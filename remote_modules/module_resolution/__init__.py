"""Module resolution with remote fallback.

Local roots are consulted first; modules missing locally are fetched from the
remote repository into the cache root and resolved again.
"""

from .cache_store import LocalCacheStore
from .descriptor import DescriptorParser
from .descriptor import ModuleDescriptor
from .descriptor import ModuleXmlParser
from .fetcher import ArtifactResult
from .fetcher import FetchOutcome
from .fetcher import FetchReport
from .fetcher import ModuleFetcher
from .identifier import SYSTEM
from .identifier import ModuleIdentifier
from .paths import compose_local_path
from .paths import compose_remote_path
from .repository import LookupOutcome
from .repository import RemoteLookup
from .repository import RemoteRepositoryClient
from .repository import RemoteResource
from .resolvers import LocalModuleResolver
from .resolvers import ModuleResolver
from .resolvers import RemoteModuleResolver
from .resolvers import SystemModuleResolver

__all__ = [
    "SYSTEM",
    "ArtifactResult",
    "DescriptorParser",
    "FetchOutcome",
    "FetchReport",
    "LocalCacheStore",
    "LocalModuleResolver",
    "LookupOutcome",
    "ModuleDescriptor",
    "ModuleFetcher",
    "ModuleIdentifier",
    "ModuleResolver",
    "ModuleXmlParser",
    "RemoteLookup",
    "RemoteModuleResolver",
    "RemoteRepositoryClient",
    "RemoteResource",
    "SystemModuleResolver",
    "compose_local_path",
    "compose_remote_path",
]
