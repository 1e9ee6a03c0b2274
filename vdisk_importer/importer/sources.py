"""Local data sources.

BlankDataSource creates an empty disk; FileDataSource imports an image file
that is already reachable on the local filesystem.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Callable, Optional

from vdisk_importer.domain import ImageInfo, ProcessingPhase
from vdisk_importer.image.operations import ImageOperations
from vdisk_importer.logging import get_logger
from vdisk_importer.storage.devices import human_size, is_block_device
from vdisk_importer.storage.exceptions import DataSourceError, InvalidTransferPathError
from vdisk_importer.storage.quantity import parse_quantity

from .data_source import DataSource

COPY_CHUNK_SIZE = 4 * 1024 * 1024

log = get_logger(source=__name__, tags=["source"])


class BlankDataSource(DataSource):
    """Produces an empty raw image of the requested size.

    When available_space is given, the image is created no larger than the
    capacity it reports, so the Resize stage never has to shrink it.
    """

    def __init__(
        self,
        image_size: str,
        image_operations: ImageOperations,
        available_space: Optional[Callable[[], int]] = None,
    ):
        self.image_size = image_size
        self.image_operations = image_operations
        self.available_space = available_space

    def info(self) -> ProcessingPhase:
        return ProcessingPhase.TRANSFER_DATA_FILE

    def transfer(self, path: str) -> ProcessingPhase:
        raise DataSourceError("Blank images are created in place, not transferred")

    def transfer_file(self, file_name: str) -> ProcessingPhase:
        size = parse_quantity(self.image_size)
        if self.available_space is not None:
            available = self.available_space()
            if available < size:
                log.info(
                    f"Requested blank size {human_size(size)} exceeds available "
                    f"space, creating {human_size(available)}"
                )
                size = available
        log.info(f"Creating blank image {file_name} of {size} bytes")
        self.image_operations.create_blank_image(file_name, size)
        return ProcessingPhase.RESIZE

    def process(self) -> ProcessingPhase:
        return ProcessingPhase.RESIZE

    def get_url(self) -> str:
        return ""


class FileDataSource(DataSource):
    """Imports an image file from a local path.

    Raw images are copied straight into the destination file. Other formats
    are converted by the image tooling, read either in place or from a copy
    placed in a scratch directory.
    """

    def __init__(
        self,
        path,
        image_operations: ImageOperations,
        copy_to_scratch: bool = False,
    ):
        self.path = Path(path)
        self.image_operations = image_operations
        self.copy_to_scratch = copy_to_scratch
        self.image_info: Optional[ImageInfo] = None
        self._url = str(self.path)

    def info(self) -> ProcessingPhase:
        if not self.path.is_file():
            raise DataSourceError(f"Source image not found: {self.path}")
        self.image_info = self.image_operations.info(str(self.path))
        log.info(
            f"Source {self.path}: format={self.image_info.format} "
            f"virtual_size={self.image_info.virtual_size}"
        )
        if self.image_info.format == "raw":
            return ProcessingPhase.TRANSFER_DATA_FILE
        if self.copy_to_scratch:
            return ProcessingPhase.TRANSFER_SCRATCH
        return ProcessingPhase.CONVERT

    def transfer(self, path: str) -> ProcessingPhase:
        if not os.path.isdir(path):
            raise InvalidTransferPathError(path, "not a directory")
        target = Path(path) / self.path.name
        self._copy(target)
        self._url = str(target)
        return ProcessingPhase.PROCESS

    def transfer_file(self, file_name: str) -> ProcessingPhase:
        self._copy(Path(file_name))
        return ProcessingPhase.COMPLETE

    def process(self) -> ProcessingPhase:
        return ProcessingPhase.CONVERT

    def get_url(self) -> str:
        return self._url

    def _copy(self, target: Path) -> None:
        log.info(f"Copying {self.path} to {target}")
        # Block devices must be opened without truncation.
        mode = "r+b" if is_block_device(target) else "wb"
        try:
            with open(self.path, "rb") as src, open(target, mode) as dst:
                shutil.copyfileobj(src, dst, COPY_CHUNK_SIZE)
                dst.flush()
                os.fsync(dst.fileno())
        except OSError as error:
            raise DataSourceError(f"Copy of {self.path} to {target} failed: {error}") from error
