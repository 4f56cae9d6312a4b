"""Kiosk management exceptions."""


class KioskError(Exception):
    """Base class for kiosk-related errors."""
    pass


class ConfigurationError(KioskError):
    """Raised when settings are invalid."""
    pass


class StoreError(KioskError):
    """Base class for persisted record errors."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class StoreReadError(StoreError):
    """Raised when a record exists but cannot be read or parsed."""
    pass


class StoreWriteError(StoreError):
    """Raised when a record cannot be written."""
    pass


class TargetNotFoundError(KioskError):
    """Raised when a kiosk target was never provisioned."""

    def __init__(self, target_id: str):
        super().__init__(f"Kiosk target not found: {target_id}")
        self.target_id = target_id


class TargetNotConfiguredError(KioskError):
    """Raised when a kiosk target has no usable URL."""

    def __init__(self, target_id: str, reason: str = "URL is empty"):
        super().__init__(f"Kiosk target {target_id} is not configured: {reason}")
        self.target_id = target_id


class OrientationError(KioskError):
    """Base class for display orientation errors."""
    pass


class UnknownOrientationError(OrientationError):
    """Raised when a value does not normalize to a known orientation."""

    def __init__(self, value):
        super().__init__(f"Unknown orientation: {value!r}")
        self.value = value


class ToolUnavailableError(OrientationError):
    """Raised when the display transform tool is missing or not ready."""
    pass


class DisplayToolError(OrientationError):
    """Raised when the display transform tool exits with an error."""

    def __init__(self, message: str, returncode: int = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class VerificationFailedError(OrientationError):
    """Raised when the display does not report the requested transform."""

    def __init__(self, output: str, expected: str, actual=None):
        super().__init__(
            f"Output {output} reports transform {actual or 'missing'}, expected {expected}"
        )
        self.output = output
        self.expected = expected
        self.actual = actual


class ServiceManagerError(KioskError):
    """Raised when a service manager operation fails."""

    def __init__(self, message: str, unit: str = None, stderr: str = ""):
        super().__init__(message)
        self.unit = unit
        self.stderr = stderr


class WaitTimeoutError(KioskError):
    """Raised when a bounded wait runs out of budget."""

    def __init__(self, waited: float, attempts: int):
        super().__init__(f"Gave up after {attempts} attempts ({waited:g}s)")
        self.waited = waited
        self.attempts = attempts


class BrowserError(KioskError):
    """Raised when the kiosk browser cannot be started."""
    pass
