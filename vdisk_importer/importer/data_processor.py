"""Phase engine that drives a single disk-image import.

The DataProcessor starts in the Info phase and asks its data source what to
do next. Each step either delegates to the source (acquire bytes) or to the
convert and resize stages (transform bytes), and every step names the phase
that follows it. The loop ends on Complete, or on the first exception.

Flow:
    Info -> TransferScratch | TransferDataDir | TransferDataFile | Convert
    TransferScratch / TransferDataDir -> Process -> Convert
    Convert -> Resize -> Complete
    TransferDataFile -> Resize | Complete
        A Complete answer is validated first, then resized when a size was
        requested. Capacity is measured before the transfer writes anything.

Rules:
    - One handler call per step; a phase never runs twice in one job.
    - A value outside ProcessingPhase raises UnknownPhaseError.
    - Nothing is retried here. Callers re-run a job after
      ScratchSpaceRequiredError once scratch space exists.
    - Instances are single use: one DataProcessor per import job.

The data source, the image tooling and the block-device capacity probe are
all injected, so concurrent jobs share no mutable state.
"""

from __future__ import annotations

import os
import uuid
from typing import Callable, Optional

from vdisk_importer.domain import ProcessingPhase
from vdisk_importer.image.operations import ImageOperations
from vdisk_importer.image.qemu import QemuImgOperations
from vdisk_importer.logging import LoggerFactory, operation_context
from vdisk_importer.storage.capacity import (
    BlockCapacityProbe,
    get_available_space_block,
    get_available_space_by_volume_mode,
)
from vdisk_importer.storage.exceptions import (
    ImageConversionError,
    ImageResizeError,
    ImageValidationError,
    InvalidTransferPathError,
    ProcessingError,
    ScratchSpaceRequiredError,
    UnknownPhaseError,
)
from vdisk_importer.storage.quantity import is_blank_quantity

from .data_source import DataSource
from .resize import resize_image


def coerce_phase(value) -> ProcessingPhase:
    """Map a handler's return value onto ProcessingPhase.

    Raises:
        UnknownPhaseError: If value names no known phase
    """
    if isinstance(value, ProcessingPhase):
        return value
    try:
        return ProcessingPhase(value)
    except ValueError as error:
        raise UnknownPhaseError(value) from error


class DataProcessor:
    """Sequences acquisition, conversion, validation and resizing of one image."""

    def __init__(
        self,
        data_source: DataSource,
        data_file: str,
        data_dir: str,
        scratch_data_dir: str,
        request_image_size: str,
        image_operations: Optional[ImageOperations] = None,
        block_capacity_probe: BlockCapacityProbe = get_available_space_block,
        job_id: Optional[str] = None,
    ):
        """
        Args:
            data_source: Source provider for this job
            data_file: Destination image path, or block device node
            data_dir: Filesystem staging directory; absent for block volumes
            scratch_data_dir: Scratch directory for sources that cannot stream
            request_image_size: Requested capacity (e.g., "10Gi"); "" skips resize
            image_operations: Image tooling; defaults to qemu-img
            block_capacity_probe: Size probe for block device destinations
            job_id: Identifier bound to every log line of this job
        """
        if image_operations is None:
            image_operations = QemuImgOperations()
        if job_id is None:
            job_id = f"import-{uuid.uuid4().hex[:8]}"
        self.data_source = data_source
        self.data_file = str(data_file)
        self.data_dir = str(data_dir)
        self.scratch_data_dir = str(scratch_data_dir)
        self.request_image_size = request_image_size or ""
        self.image_operations = image_operations
        self.block_capacity_probe = block_capacity_probe
        self.current_phase = ProcessingPhase.INFO
        self.job_id = job_id
        self.log = LoggerFactory.for_import(job_id)
        self._available_space: Optional[int] = None
        self._started = False
        self._handlers: dict[ProcessingPhase, Callable[[], ProcessingPhase]] = {
            ProcessingPhase.INFO: self._info,
            ProcessingPhase.TRANSFER_SCRATCH: self._transfer_scratch,
            ProcessingPhase.TRANSFER_DATA_DIR: self._transfer_data_dir,
            ProcessingPhase.TRANSFER_DATA_FILE: self._transfer_data_file,
            ProcessingPhase.PROCESS: self._process,
            ProcessingPhase.CONVERT: self._convert,
            ProcessingPhase.RESIZE: self.resize,
        }

    @property
    def available_space(self) -> int:
        """Usable bytes at the destination, computed on first use."""
        if self._available_space is None:
            self._available_space = get_available_space_by_volume_mode(
                self.data_dir, self.data_file, self.block_capacity_probe
            )
            self.log.debug(f"Available space at destination: {self._available_space}")
        return self._available_space

    @available_space.setter
    def available_space(self, value: int) -> None:
        self._available_space = value

    def process_data(self) -> None:
        """Run the pipeline until Complete.

        Raises:
            ScratchSpaceRequiredError: The source needs scratch space
            UnknownPhaseError: A handler returned an unrecognized phase
            ImageValidationError: The image failed validation
            ImporterError: Any other failure, with the cause chained
        """
        if self._started:
            raise ProcessingError("DataProcessor has already run; create one per job")
        self._started = True

        with operation_context(
            "import", job_id=self.job_id, data_file=self.data_file
        ) as log:
            self.log = log
            visited: set[ProcessingPhase] = set()
            while True:
                phase = coerce_phase(self.current_phase)
                if phase is ProcessingPhase.COMPLETE:
                    return
                if phase is ProcessingPhase.ERROR:
                    raise ProcessingError(
                        "Data source reported an error phase without an error"
                    )
                if phase in visited:
                    raise ProcessingError(f"Phase {phase} was already processed")
                visited.add(phase)
                next_phase = self._handlers[phase]()
                log.debug(f"Phase {phase} -> {next_phase}")
                self.current_phase = next_phase

    def _info(self) -> ProcessingPhase:
        return self.data_source.info()

    def _transfer_scratch(self) -> ProcessingPhase:
        try:
            return self.data_source.transfer(self.scratch_data_dir)
        except InvalidTransferPathError as error:
            self.log.warning(f"Transfer into {self.scratch_data_dir} impossible: {error}")
            raise ScratchSpaceRequiredError() from error

    def _transfer_data_dir(self) -> ProcessingPhase:
        return self.data_source.transfer(self.data_dir)

    def _transfer_data_file(self) -> ProcessingPhase:
        # Capacity is measured before the image occupies the destination.
        available_space = self.available_space
        next_phase = coerce_phase(self.data_source.transfer_file(self.data_file))
        if next_phase is not ProcessingPhase.COMPLETE:
            return next_phase
        # Raw data written straight to the destination skips Convert.
        self._validate(self.data_file, available_space)
        if is_blank_quantity(self.request_image_size):
            return next_phase
        return ProcessingPhase.RESIZE

    def _process(self) -> ProcessingPhase:
        return self.data_source.process()

    def _convert(self) -> ProcessingPhase:
        return self.convert(self.data_source.get_url())

    def _validate(self, url: str, available_space: Optional[int] = None) -> None:
        if available_space is None:
            available_space = self.available_space
        try:
            self.image_operations.validate(url, available_space)
        except ImageValidationError:
            raise
        except Exception as error:
            raise ImageValidationError(
                f"Image validation failed: {error}", image=str(url)
            ) from error

    def convert(self, url: str) -> ProcessingPhase:
        """Validate the source at url, then stream it as raw into data_file.

        Returns:
            ProcessingPhase.RESIZE

        Raises:
            ImageValidationError: Validation failed; nothing was converted
            ImageConversionError: Conversion failed
        """
        self._validate(url)
        self.log.info(f"Converting {url} to raw at {self.data_file}")
        try:
            self.image_operations.convert_to_raw_stream(url, self.data_file)
        except ImageConversionError:
            raise
        except Exception as error:
            raise ImageConversionError(
                f"Conversion to raw failed: {error}", image=str(url)
            ) from error
        return ProcessingPhase.RESIZE

    def resize(self) -> ProcessingPhase:
        """Reconcile the destination's capacity with the requested size.

        Block device destinations are provisioned at their final size, so only
        images on a filesystem volume are resized.

        Returns:
            ProcessingPhase.COMPLETE

        Raises:
            ImageResizeError: The image could not be resized
        """
        if is_blank_quantity(self.request_image_size):
            self.log.debug("No image size requested, not resizing")
            return ProcessingPhase.COMPLETE
        if not os.path.isdir(self.data_dir):
            self.log.debug(f"{self.data_dir} is not a directory, block volume not resized")
            return ProcessingPhase.COMPLETE
        available_space = self.available_space
        try:
            resize_image(
                self.data_file,
                self.request_image_size,
                available_space,
                self.image_operations,
            )
        except ImageResizeError:
            raise
        except Exception as error:
            raise ImageResizeError(
                f"Resize of image failed: {error}", image=self.data_file
            ) from error
        return ProcessingPhase.COMPLETE
