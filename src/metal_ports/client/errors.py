"""Custom exceptions for the metal-ports client and reconciliation engine."""

from __future__ import annotations

from dataclasses import dataclass


class MetalError(Exception):
    """Base exception for all metal-ports errors."""


class MetalRequestError(MetalError):
    """Raised when a network-level error occurs (connection refused, timeout, etc.)."""

    def __init__(self, url: str, cause: Exception) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"Request to {url!r} failed: {cause}")


class MetalResponseError(MetalError):
    """Raised when the API returns a non-2xx HTTP status code.

    Attributes:
        status_code: HTTP status code.
        url: Requested URL.
        errors: Error strings from the API body (``errors`` list and/or the
            single ``error`` field), empty when the body carried none.
    """

    def __init__(self, status_code: int, url: str, errors: list[str] | None = None) -> None:
        self.status_code = status_code
        self.url = url
        self.errors: list[str] = list(errors or [])
        detail = f": {', '.join(self.errors)}" if self.errors else ""
        super().__init__(f"HTTP {status_code} for {url!r}{detail}")


class MetalParseError(MetalError):
    """Raised when a JSON payload cannot be decoded or has an unexpected shape."""


class MetalPortNotFoundError(MetalError):
    """Raised when a device has no port with the requested interface name."""

    def __init__(self, name: str, device_id: str | None = None) -> None:
        self.name = name
        self.device_id = device_id
        where = f" on device {device_id!r}" if device_id else ""
        super().__init__(f"Port {name!r} not found{where}")


class MetalConversionError(MetalError):
    """Base exception for network type conversion outcomes."""


@dataclass
class MetalConversionNotNeededError(MetalConversionError):
    """Raised before any remote call when the device is already in *target*.

    Callers should treat this as a successful no-op.
    """

    device_id: str
    current: str
    target: str

    def __post_init__(self) -> None:
        super().__init__(
            f"Device {self.device_id} doesn't need to be converted "
            f"from {self.current} to {self.target}"
        )


@dataclass
class MetalConversionStepError(MetalConversionError):
    """Raised when a recipe step fails; the remaining steps are not issued.

    The device is left in whatever state the completed steps produced.
    The underlying error is available as :attr:`cause` and ``__cause__``.

    Attributes:
        device_id: Device being converted.
        target: Requested network type.
        step: Description of the failing step.
        completed_steps: Number of recipe steps that finished before the failure.
        cause: The underlying :class:`MetalError`, or ``None`` on cancellation.
    """

    device_id: str
    target: str
    step: str
    completed_steps: int
    cause: Exception | None = None

    def __post_init__(self) -> None:
        super().__init__(
            f"Converting device {self.device_id} to {self.target} failed at step "
            f"{self.completed_steps + 1} ({self.step}): {self.cause}"
        )


@dataclass
class MetalConversionCancelledError(MetalConversionStepError):
    """Raised when the caller's cancel event is set between recipe steps."""

    def __post_init__(self) -> None:
        MetalConversionError.__init__(
            self,
            f"Converting device {self.device_id} to {self.target} was cancelled "
            f"before step {self.completed_steps + 1} ({self.step})",
        )


@dataclass
class MetalVerificationError(MetalConversionError):
    """Raised when a recipe completed but the device did not reach *target*.

    Attributes:
        device_id: Device being converted.
        initial: Network type observed before the first step.
        target: Requested network type.
        final: Network type observed after the last step.
    """

    device_id: str
    initial: str
    target: str
    final: str

    def __post_init__(self) -> None:
        super().__init__(
            f"Failed to convert device {self.device_id} from {self.initial} "
            f"to {self.target}. New type was {self.final}"
        )
