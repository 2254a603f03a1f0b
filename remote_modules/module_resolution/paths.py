"""Identifier to path composition.

The same naming rule drives where an artifact is cached and where it is
requested from the repository, so a cache miss and the following fetch always
target the same relative location.
"""

import os

from .identifier import ModuleIdentifier

DESCRIPTOR_NAME = "module.xml"
INDEX_SUFFIX = ".index"


def _segments(identifier: ModuleIdentifier) -> list[str]:
    return [*identifier.name.split("."), identifier.slot]


def compose_local_path(identifier: ModuleIdentifier) -> str:
    """Relative cache directory for a module, ending with ``os.sep``.

    Example: ``org.example.foo:main`` -> ``org/example/foo/main/``
    """
    return os.sep.join(_segments(identifier)) + os.sep


def compose_remote_path(identifier: ModuleIdentifier, version: str) -> str:
    """Repository path for a module, prefixed with the repository version tag.

    Always uses ``/`` since the result is appended to a URL.

    Example: ``org.example.foo:main`` at ``trunk`` -> ``trunk/org/example/foo/main/``
    """
    return "/".join([version, *_segments(identifier)]) + "/"
