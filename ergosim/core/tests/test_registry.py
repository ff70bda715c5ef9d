"""Unit tests for ergosim.core.registry module."""

import pytest

from ergosim.core.errors import (
    DuplicateNameError,
    RegistryClosedError,
    RegistryError,
    UnknownMeasureError,
)
from ergosim.core.registry import Measure, MeasureRegistry


class TestMeasureRegistryRegister:
    """Tests for MeasureRegistry.register."""

    def test_register_returns_dense_handles_in_order(self) -> None:
        """Test that handles are assigned 0..k-1 in registration order."""
        registry = MeasureRegistry()

        handles = [registry.register(name) for name in ("Mean X", "Mean X^2", "Mean X^3")]

        assert handles == [0, 1, 2]
        assert len(registry) == 3

    def test_register_with_duplicate_name_raises_error(self) -> None:
        """Test that registering a name twice raises DuplicateNameError."""
        registry = MeasureRegistry()
        registry.register("Mean X")

        with pytest.raises(DuplicateNameError, match="Mean X"):
            registry.register("Mean X")

        assert len(registry) == 1

    def test_register_after_close_raises_error(self) -> None:
        """Test that the registry rejects new measures once closed."""
        registry = MeasureRegistry()
        registry.register("Mean X")
        registry.close()

        with pytest.raises(RegistryClosedError):
            registry.register("Mean Y")

    def test_registry_errors_share_base_class(self) -> None:
        """Test that registry misuse can be caught as RegistryError."""
        registry = MeasureRegistry()
        registry.register("a")

        with pytest.raises(RegistryError):
            registry.register("a")

    def test_close_is_idempotent(self) -> None:
        """Test that closing twice keeps the registry closed."""
        registry = MeasureRegistry()

        registry.close()
        registry.close()

        assert registry.closed is True


class TestMeasureRegistryLookup:
    """Tests for name and handle lookups."""

    @pytest.fixture
    def registry(self) -> MeasureRegistry:
        registry = MeasureRegistry()
        registry.register("Mean X")
        registry.register("Mean X^2")
        return registry

    def test_name_returns_registered_name(self, registry: MeasureRegistry) -> None:
        """Test name lookup by handle."""
        assert registry.name(1) == "Mean X^2"

    def test_name_with_unknown_handle_raises_error(self, registry: MeasureRegistry) -> None:
        """Test that out-of-range handles are rejected."""
        with pytest.raises(UnknownMeasureError):
            registry.name(2)
        with pytest.raises(UnknownMeasureError):
            registry.name(-1)

    def test_handle_returns_registered_handle(self, registry: MeasureRegistry) -> None:
        """Test handle lookup by name."""
        assert registry.handle("Mean X") == 0

    def test_handle_with_unknown_name_raises_key_error(self, registry: MeasureRegistry) -> None:
        """Test that UnknownMeasureError is also a KeyError with a plain message."""
        with pytest.raises(KeyError) as exc_info:
            registry.handle("Mean Y")

        assert str(exc_info.value) == "No measure named 'Mean Y'"

    def test_find_returns_none_for_unknown_name(self, registry: MeasureRegistry) -> None:
        """Test the non-raising lookup."""
        assert registry.find("Mean X^2") == 1
        assert registry.find("missing") is None

    def test_names_mapping_and_iteration(self, registry: MeasureRegistry) -> None:
        """Test the read-only views of the registry."""
        assert registry.names() == ["Mean X", "Mean X^2"]
        assert registry.mapping() == {"Mean X": 0, "Mean X^2": 1}
        assert list(registry) == [Measure(0, "Mean X"), Measure(1, "Mean X^2")]
        assert "Mean X" in registry
        assert "Mean Z" not in registry

    def test_mapping_is_a_copy(self, registry: MeasureRegistry) -> None:
        """Test that mutating the returned mapping leaves the registry intact."""
        mapping = registry.mapping()
        mapping["Mean Z"] = 7

        assert "Mean Z" not in registry

    def test_repr_shows_state(self, registry: MeasureRegistry) -> None:
        """Test the representation of open and closed registries."""
        assert "open" in repr(registry)
        registry.close()
        assert "closed" in repr(registry)
