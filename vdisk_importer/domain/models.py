"""Domain model for disk-image import jobs.

Type-safe values shared by the phase engine, the data sources and the image
tooling adapter.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


# ==============================================================================
# Processing Phases
# ==============================================================================


class ProcessingPhase(str, Enum):
    """Step in the import pipeline.

    Used both as the current state of a DataProcessor and as the transition
    signal returned by every phase handler.
    """

    INFO = "Info"
    TRANSFER_SCRATCH = "TransferScratch"
    TRANSFER_DATA_DIR = "TransferDataDir"
    TRANSFER_DATA_FILE = "TransferDataFile"
    PROCESS = "Process"
    CONVERT = "Convert"
    RESIZE = "Resize"
    COMPLETE = "Complete"
    ERROR = "Error"

    @property
    def is_terminal(self) -> bool:
        """True for phases that end the pipeline."""
        return self in (ProcessingPhase.COMPLETE, ProcessingPhase.ERROR)

    def __str__(self) -> str:
        return self.value


# ==============================================================================
# Image Domain
# ==============================================================================


@dataclass(frozen=True)
class ImageInfo:
    """Metadata reported by probing a disk image.

    Replaces the raw dict from `qemu-img info --output=json`.
    """

    format: str  # e.g., "qcow2", "raw"
    backing_file: str = ""  # Empty unless the image is part of a chain
    virtual_size: int = 0  # Logical size in bytes
    actual_size: int = 0  # Bytes allocated on disk

    @property
    def has_backing_file(self) -> bool:
        return bool(self.backing_file)

    @classmethod
    def from_qemu_json(cls, data: dict[str, Any]) -> ImageInfo:
        """Convert `qemu-img info --output=json` output to ImageInfo.

        Args:
            data: Parsed JSON object with keys format, backing-filename,
                virtual-size, actual-size

        Returns:
            ImageInfo domain object

        Raises:
            ValueError: If a size field cannot be converted to int
        """
        return cls(
            format=data.get("format") or "",
            backing_file=data.get("backing-filename") or "",
            virtual_size=int(data.get("virtual-size") or 0),
            actual_size=int(data.get("actual-size") or 0),
        )
