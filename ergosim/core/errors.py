"""Exception classes raised by the ergosim simulation core."""


class SimulationError(Exception):
    """Base exception for all runtime errors raised by the harness.

    Catch this to handle any failure coming from the registry, the
    accumulators, the driver or a data sink in one place.
    """


class RegistryError(SimulationError):
    """Base exception for measure registry misuse."""


class DuplicateNameError(RegistryError):
    """Raised when a measure name is registered twice in the same run."""


class RegistryClosedError(RegistryError):
    """Raised when registering a measure after the run has started.

    Handles index fixed-size accumulator storage, so the registry is
    frozen once a driver takes ownership of it.
    """


class UnknownMeasureError(RegistryError, KeyError):
    """Raised when a handle or name does not refer to a registered measure."""

    def __str__(self) -> str:
        # KeyError quotes its argument, keep the plain message instead
        return str(self.args[0]) if self.args else ""


class InvalidMeasurementError(SimulationError, ValueError):
    """Raised when a non-finite value is passed to an accumulator.

    A NaN or infinite observable indicates a bug in the measurement code and
    is fatal for the node.
    """

    def __init__(self, handle: int | None, value: float):
        self.handle = handle
        self.value = value
        super().__init__(
            f"Non-finite measurement {value!r} recorded for measure handle {handle}"
        )


class SampleError(SimulationError):
    """Raised when user supplied sample or measurement code fails.

    The original exception is chained as ``__cause__``.
    """


class ExportError(SimulationError):
    """Raised by a data sink that did not acknowledge a snapshot."""


class SnapshotFormatError(SimulationError, ValueError):
    """Raised when an export document does not match the snapshot schema."""


class IncompatibleMergeError(SimulationError, ValueError):
    """Raised when accumulators of different measures are merged."""
