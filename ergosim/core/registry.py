"""
Measure registry for ergosim simulations.

Maps human-readable observable names to dense integer handles. Handles are
assigned in registration order and index the fixed-size accumulator storage
of an :class:`~ergosim.core.accumulator.AccumulatorSet`, which is why the
registry is closed for registration once a run starts.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from ergosim.core.errors import (
    DuplicateNameError,
    RegistryClosedError,
    UnknownMeasureError,
)
from ergosim.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Measure:
    """
    A registered statistical observable.

    :ivar handle: Dense integer index, stable for the whole run
    :vartype handle: int
    :ivar name: Unique human-readable name
    :vartype name: str
    """

    handle: int
    name: str


class MeasureRegistry:
    """
    Owns the ``name <-> handle`` mapping of one simulation run.

    Names are unique, handles are ``0..k-1`` without gaps. Registration is
    only legal until :meth:`close` is called by the driver.

    Example::

        >>> registry = MeasureRegistry()
        >>> mean_x = registry.register("Mean X")
        >>> mean_x2 = registry.register("Mean X^2")
        >>> registry.name(mean_x2)
        'Mean X^2'
    """

    def __init__(self) -> None:
        self._measures: list[Measure] = []
        self._handles: dict[str, int] = {}
        self._closed = False

    def register(self, name: str) -> int:
        """
        Register a new measure and return its handle.

        :param name: Unique human-readable name of the observable
        :type name: str
        :return: The next dense handle
        :rtype: int
        :raises RegistryClosedError: If the run has already started
        :raises DuplicateNameError: If the name was registered before
        """
        if self._closed:
            raise RegistryClosedError(
                f"Cannot register measure {name!r}: the registry is closed"
            )
        if name in self._handles:
            raise DuplicateNameError(f"Measure {name!r} is already registered")

        handle = len(self._measures)
        self._measures.append(Measure(handle=handle, name=name))
        self._handles[name] = handle
        logger.debug("Registered measure %r with handle %d", name, handle)
        return handle

    def close(self) -> None:
        """Freeze the registry. Idempotent."""
        self._closed = True

    @property
    def closed(self) -> bool:
        """Whether registration is still allowed."""
        return self._closed

    def handle(self, name: str) -> int:
        """
        Look up the handle of a registered name.

        :raises UnknownMeasureError: If the name is not registered
        """
        try:
            return self._handles[name]
        except KeyError:
            raise UnknownMeasureError(f"No measure named {name!r}") from None

    def find(self, name: str) -> int | None:
        """Return the handle of ``name`` or None if it is not registered."""
        return self._handles.get(name)

    def name(self, handle: int) -> str:
        """
        Look up the name behind a handle.

        :raises UnknownMeasureError: If the handle is out of range
        """
        if not 0 <= handle < len(self._measures):
            raise UnknownMeasureError(f"No measure with handle {handle}")
        return self._measures[handle].name

    def names(self) -> list[str]:
        """Names in handle order."""
        return [measure.name for measure in self._measures]

    def mapping(self) -> dict[str, int]:
        """A copy of the ``name -> handle`` mapping."""
        return dict(self._handles)

    def __len__(self) -> int:
        return len(self._measures)

    def __iter__(self) -> Iterator[Measure]:
        return iter(self._measures)

    def __contains__(self, name: object) -> bool:
        return name in self._handles

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"MeasureRegistry({self.names()!r}, {state})"
