"""Tests for module identifiers and path composition."""

import os

import pytest
from remote_modules.module_resolution.identifier import SYSTEM
from remote_modules.module_resolution.identifier import ModuleIdentifier
from remote_modules.module_resolution.paths import compose_local_path
from remote_modules.module_resolution.paths import compose_remote_path


class TestModuleIdentifier:
    def test_structural_equality(self):
        assert ModuleIdentifier("org.example.foo", "main") == ModuleIdentifier("org.example.foo", "main")
        assert ModuleIdentifier("org.example.foo", "main") != ModuleIdentifier("org.example.foo", "1.0")
        assert len({ModuleIdentifier("a.b"), ModuleIdentifier("a.b", "main")}) == 1

    def test_immutable(self):
        identifier = ModuleIdentifier("org.example.foo")
        with pytest.raises(AttributeError):
            identifier.name = "other"  # type: ignore[misc]

    def test_parse_with_and_without_slot(self):
        assert ModuleIdentifier.parse("org.example.foo") == ModuleIdentifier("org.example.foo", "main")
        assert ModuleIdentifier.parse("org.example.foo:1.2") == ModuleIdentifier("org.example.foo", "1.2")

    @pytest.mark.parametrize("text", ["", ":main", "org.example.foo:"])
    def test_parse_rejects_empty_parts(self, text):
        with pytest.raises(ValueError):
            ModuleIdentifier.parse(text)

    @pytest.mark.parametrize(
        ("name", "slot"),
        [
            ("org..foo", "main"),
            (".org.foo", "main"),
            ("org.foo.", "main"),
            ("..", "main"),
            ("org/foo", "main"),
            ("org\\foo", "main"),
            ("org.foo", ".."),
            ("org.foo", "."),
            ("org.foo", "a/b"),
        ],
    )
    def test_rejects_parts_unusable_as_directories(self, name, slot):
        with pytest.raises(ValueError, match="Invalid module"):
            ModuleIdentifier(name, slot)

    def test_dotted_slot_is_allowed(self):
        assert ModuleIdentifier("org.foo", "1.2.3").slot == "1.2.3"

    def test_str(self):
        assert str(ModuleIdentifier("org.example.foo", "main")) == "org.example.foo:main"

    def test_system_identifier(self):
        assert SYSTEM == ModuleIdentifier("system", "main")


class TestPathComposition:
    def test_local_path(self):
        identifier = ModuleIdentifier("org.example.foo", "main")
        assert compose_local_path(identifier) == os.sep.join(["org", "example", "foo", "main"]) + os.sep

    def test_remote_path_has_version_prefix(self):
        identifier = ModuleIdentifier("org.example.foo", "main")
        assert compose_remote_path(identifier, "trunk") == "trunk/org/example/foo/main/"

    @pytest.mark.parametrize(
        "identifier",
        [
            ModuleIdentifier("org.example.foo", "main"),
            ModuleIdentifier("single", "1.0"),
            ModuleIdentifier("a.b.c.d.e", "x"),
        ],
    )
    def test_local_and_remote_paths_agree_below_version(self, identifier):
        remote = compose_remote_path(identifier, "7.0")
        version, _, rest = remote.partition("/")
        assert version == "7.0"
        assert rest == compose_local_path(identifier).replace(os.sep, "/")

    def test_local_path_ignores_version(self):
        identifier = ModuleIdentifier("org.example.foo")
        assert compose_remote_path(identifier, "trunk") != compose_remote_path(identifier, "7.0")
        assert compose_local_path(identifier) == compose_local_path(ModuleIdentifier("org.example.foo"))
