"""Custom exceptions for import operations.

This module defines a hierarchy of exceptions so callers can tell apart the
failure modes of an import job by exception class rather than by message.

Exception Hierarchy:
    ImporterError (base)
        ├── DataSourceError
        │   └── InvalidTransferPathError
        ├── ScratchSpaceRequiredError
        ├── ProcessingError
        │   └── UnknownPhaseError
        ├── ImageOperationError
        │   ├── ImageValidationError
        │   ├── ImageConversionError
        │   └── ImageResizeError
        └── CapacityError
            ├── CapacityProbeError
            └── InvalidQuantityError

ScratchSpaceRequiredError is the only recoverable condition: the job can be
re-run once scratch space has been provisioned. Everything else is fatal.

Usage:
    from vdisk_importer.storage.exceptions import ScratchSpaceRequiredError

    try:
        processor.process_data()
    except ScratchSpaceRequiredError:
        # provision scratch space and run the job again
        ...
"""


class ImporterError(Exception):
    """Base exception for all import operations."""



class DataSourceError(ImporterError):
    """Base exception for data source failures."""



class InvalidTransferPathError(DataSourceError):
    """Destination path cannot be used for a streaming transfer."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        msg = f"Invalid transfer path: {path}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ScratchSpaceRequiredError(ImporterError):
    """The data source needs a scratch area the job was not given."""

    def __init__(self, message: str = "Scratch space required, and none found"):
        super().__init__(message)


class ProcessingError(ImporterError):
    """Generic phase engine failure."""



class UnknownPhaseError(ProcessingError):
    """A phase handler returned a value outside ProcessingPhase."""

    def __init__(self, phase):
        self.phase = phase
        super().__init__(f"Unknown processing phase {phase!r}")


class ImageOperationError(ImporterError):
    """Image tooling invocation failed."""

    def __init__(self, message: str, image: str = None):
        self.image = image
        super().__init__(message)


class ImageValidationError(ImageOperationError):
    """Image failed capacity, format or integrity checks."""

    def __init__(self, message: str = "Image validation failed", image: str = None):
        super().__init__(message, image=image)


class ImageConversionError(ImageOperationError):
    """Conversion to raw format failed."""



class ImageResizeError(ImageOperationError):
    """Resizing the destination image failed."""



class CapacityError(ImporterError):
    """Base exception for capacity calculations."""



class CapacityProbeError(CapacityError):
    """Capacity of the destination could not be determined."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        msg = f"Unable to determine available space for {path}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class InvalidQuantityError(CapacityError, ValueError):
    """Capacity string could not be parsed."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid capacity quantity: {value!r}")


def is_retryable(error: BaseException) -> bool:
    """Return True when re-running the job with scratch space may succeed."""
    return isinstance(error, ScratchSpaceRequiredError)
