"""module.xml descriptors.

Only the resource list is read; the rest of the descriptor (dependencies,
main class, properties) belongs to downstream consumers.

Example descriptor:

    <module xmlns="urn:jboss:module:1.0" name="org.example.foo">
        <resources>
            <resource-root path="foo.jar"/>
            <resource-root path="lib/foo-extra.jar"/>
        </resources>
    </module>
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from pathlib import PurePosixPath
from typing import BinaryIO
from typing import Protocol

from ..errors import DescriptorParseError
from .identifier import ModuleIdentifier


class DescriptorParser(Protocol):
    """Turns descriptor bytes into the ordered list of resource paths."""

    def parse_resource_paths(self, stream: BinaryIO, identifier: ModuleIdentifier) -> list[str]:
        """Parse resource paths, in declaration order.

        Args:
            stream: Open binary stream positioned at the descriptor start. Not closed by the parser.
            identifier: Module being parsed (error context only)

        Raises:
            DescriptorParseError: Descriptor is malformed
        """
        ...


def _local_name(tag: str) -> str:
    """Strip an XML namespace: '{urn:jboss:module:1.0}module' -> 'module'."""
    return tag.rsplit("}", 1)[-1]


class ModuleXmlParser:
    """DescriptorParser for module.xml files, namespace-agnostic."""

    def parse_resource_paths(self, stream: BinaryIO, identifier: ModuleIdentifier) -> list[str]:
        try:
            root = ET.parse(stream).getroot()
        except ET.ParseError as e:
            raise DescriptorParseError(f"Malformed module.xml for {identifier}: {e}", identifier) from e

        if _local_name(root.tag) not in ("module", "module-alias"):
            raise DescriptorParseError(
                f"Unexpected root element <{_local_name(root.tag)}> in module.xml for {identifier}", identifier
            )

        paths: list[str] = []
        for resources in root:
            if _local_name(resources.tag) != "resources":
                continue
            for entry in resources:
                if _local_name(entry.tag) != "resource-root":
                    continue
                path = (entry.get("path") or "").strip()
                if not path:
                    raise DescriptorParseError(f"resource-root without path in {identifier}", identifier)
                self._check_relative(path, identifier)
                paths.append(path)
        return paths

    def _check_relative(self, path: str, identifier: ModuleIdentifier) -> None:
        """Reject paths that would leave the module directory."""
        pure = PurePosixPath(path.replace("\\", "/"))
        if pure.is_absolute() or ".." in pure.parts:
            raise DescriptorParseError(f"Resource path escapes module root in {identifier}: {path}", identifier)

    def __repr__(self) -> str:
        return "ModuleXmlParser()"


@dataclass(frozen=True)
class ModuleDescriptor:
    """A module whose descriptor is available on the local filesystem."""

    identifier: ModuleIdentifier
    descriptor_path: Path | None
    root: Path | None
    resource_paths: tuple[str, ...] = field(default_factory=tuple)

    def _locate(self, resource_path: str) -> Path:
        return Path(resource_path) if self.root is None else self.root / resource_path

    @property
    def resources(self) -> list[Path]:
        """Paths of declared resources that exist, in declaration order."""
        return [self._locate(p) for p in self.resource_paths if self._locate(p).exists()]

    @property
    def missing_resources(self) -> list[str]:
        """Declared resources that are not materialized."""
        return [p for p in self.resource_paths if not self._locate(p).exists()]
