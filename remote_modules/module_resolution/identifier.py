"""Module identifiers."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_SLOT = "main"


def _has_separator(value: str) -> bool:
    return "/" in value or "\\" in value or os.sep in value


@dataclass(frozen=True)
class ModuleIdentifier:
    """Immutable {name, slot} key naming a module.

    The name is a dot-separated namespace path (``org.example.foo``); the slot
    discriminates variants of the same module (``main``, ``1.2``).
    """

    name: str
    slot: str = DEFAULT_SLOT

    def __post_init__(self):
        if not self.name:
            raise ValueError("Module name must not be empty")
        if not self.slot:
            raise ValueError(f"Module slot must not be empty for '{self.name}'")
        # Name segments and the slot become directory names
        if any(not segment for segment in self.name.split(".")) or _has_separator(self.name):
            raise ValueError(f"Invalid module name: '{self.name}'")
        if self.slot in (".", "..") or _has_separator(self.slot):
            raise ValueError(f"Invalid module slot for '{self.name}': '{self.slot}'")

    @classmethod
    def parse(cls, text: str) -> ModuleIdentifier:
        """Parse ``name[:slot]`` into an identifier.

        Args:
            text: Identifier string, e.g. ``org.example.foo`` or ``org.example.foo:1.0``

        Returns:
            ModuleIdentifier instance

        Raises:
            ValueError: Name or slot is empty or not usable as a directory name
        """
        text = text.strip()
        if ":" in text:
            name, slot = text.rsplit(":", 1)
            return cls(name=name, slot=slot)
        return cls(name=text)

    def __str__(self) -> str:
        return f"{self.name}:{self.slot}"


# Bootstrap module answered in-process, never fetched
SYSTEM = ModuleIdentifier("system", DEFAULT_SLOT)
