"""
Unit tests for descriptors and dependency keys.
"""
from typing import Protocol, runtime_checkable

import pytest

from scopekit import Descriptor, DescriptorError, PreconditionError, Token, dependency
from scopekit.shared.types import expected_type, key_name


class Settings:
    pass


def build_settings(scope) -> Settings:
    return Settings()


class TestDescriptor:
    """Test cases for Descriptor."""

    def test_depends_on_is_normalized_to_unique_ordered_tuple(self):
        """Test that duplicate dependencies collapse, keeping first occurrence."""
        descriptor = Descriptor(str, lambda scope: "x", depends_on=[int, float, int])

        assert descriptor.depends_on == (int, float)

    def test_descriptor_is_immutable(self):
        """Test that descriptors cannot be changed once created."""
        descriptor = Descriptor(int, lambda scope: 3)

        with pytest.raises(AttributeError):
            descriptor.key = str

    def test_non_callable_factory_rejected(self):
        """Test that a factory must be callable."""
        with pytest.raises(DescriptorError, match="not callable"):
            Descriptor(int, 3)

    def test_invalid_key_rejected(self):
        """Test that keys must be classes or tokens."""
        with pytest.raises(DescriptorError, match="Invalid dependency key"):
            Descriptor("int", lambda scope: 3)

    def test_invalid_dependency_key_rejected(self):
        """Test that declared dependencies must be classes or tokens."""
        with pytest.raises(DescriptorError) as exc_info:
            Descriptor(str, lambda scope: "x", depends_on=["int"])

        assert exc_info.value.dependency == "str"

    def test_name_uses_token_name(self):
        """Test display names of token keys."""
        api_url = Token("api_url", str)

        assert Descriptor(api_url, lambda scope: "http://localhost").name == "api_url"


class TestDependencyHelper:
    """Test cases for the dependency() helper."""

    def test_key_inferred_from_return_annotation(self):
        """Test that the key defaults to the factory's return type."""
        descriptor = dependency(build_settings)

        assert descriptor.key is Settings
        assert descriptor.depends_on == ()

    def test_explicit_key_wins(self):
        """Test that an explicit key is used as given."""
        token = Token("settings", Settings)

        descriptor = dependency(build_settings, key=token, depends_on=[int])

        assert descriptor.key is token
        assert descriptor.depends_on == (int,)

    def test_unannotated_factory_requires_key(self):
        """Test that inference fails for factories without annotations."""
        with pytest.raises(DescriptorError, match="Cannot infer"):
            dependency(lambda scope: 3)


class TestToken:
    """Test cases for Token keys."""

    def test_tokens_compare_by_identity(self):
        """Test that equal names still produce distinct keys."""
        first = Token("port", int)
        second = Token("port", int)

        assert first != second
        assert {first: 1, second: 2}[first] == 1

    def test_empty_name_rejected(self):
        """Test that a token needs a name."""
        with pytest.raises(PreconditionError, match="Token name cannot be empty"):
            Token("  ")

    def test_key_name(self):
        """Test display names for the supported key kinds."""
        assert key_name(int) == "int"
        assert key_name(Settings) == "Settings"
        assert key_name(Token("db")) == "db"

    def test_expected_type(self):
        """Test which keys carry a checkable type."""
        class Plain(Protocol):
            def run(self) -> None: ...

        @runtime_checkable
        class Checkable(Protocol):
            def run(self) -> None: ...

        assert expected_type(int) is int
        assert expected_type(Token("port", int)) is int
        assert expected_type(Token("anything")) is None
        assert expected_type(Plain) is None
        assert expected_type(Checkable) is Checkable
