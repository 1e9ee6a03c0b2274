"""Contract for disk image tooling.

The phase engine never shells out itself. It drives an ImageOperations
implementation supplied at construction time, so the production qemu-img
adapter can be swapped for a fake in tests or an alternative tool elsewhere.

Every operation is synchronous and blocking. Failures are raised as
exceptions; the engine wraps them into its own taxonomy without inspecting
tool exit codes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from vdisk_importer.domain import ImageInfo


class ImageOperations(ABC):
    """Image inspection and conversion operations required by the importer."""

    @abstractmethod
    def info(self, url: str) -> ImageInfo:
        """Probe the image at url and report its metadata."""

    @abstractmethod
    def convert_to_raw_stream(self, url: str, dest: str) -> None:
        """Convert the image at url into a raw image written to dest."""

    @abstractmethod
    def validate(self, url: str, available_size: int) -> None:
        """Check that the image at url fits in available_size bytes.

        Raises:
            ImageValidationError: If the image is unsupported or too large
        """

    @abstractmethod
    def resize(self, dest: str, size: int) -> None:
        """Grow or shrink the raw image at dest to size bytes."""

    @abstractmethod
    def create_blank_image(self, dest: str, size: int) -> None:
        """Create an empty raw image of size bytes at dest."""
