"""qemu-img adapter for the ImageOperations contract."""

from __future__ import annotations

import json
import shutil
from typing import Iterable, Optional
from urllib.parse import unquote, urlparse

from vdisk_importer.domain import ImageInfo
from vdisk_importer.logging import LoggerFactory, ThrottledLogger
from vdisk_importer.storage.command_runners import (
    run_checked_command,
    run_checked_with_progress,
)
from vdisk_importer.storage.exceptions import (
    ImageConversionError,
    ImageOperationError,
    ImageResizeError,
    ImageValidationError,
)
from vdisk_importer.storage.quantity import parse_quantity

from .operations import ImageOperations

DEFAULT_ALLOWED_FORMATS = ("raw", "qcow2")

log = LoggerFactory.for_image()


def source_argument(url: str) -> str:
    """Turn a source locator into the argument qemu-img expects.

    file:// URLs and bare paths become local paths; anything else
    (http, https) is handed to qemu's network drivers untouched.
    """
    parsed = urlparse(str(url))
    if parsed.scheme == "file":
        return unquote(parsed.path)
    return str(url)


class QemuImgOperations(ImageOperations):
    """ImageOperations backed by the qemu-img command line tool."""

    def __init__(
        self,
        qemu_img_path: Optional[str] = None,
        allowed_formats: Iterable[str] = DEFAULT_ALLOWED_FORMATS,
        progress_interval_seconds: float = 5.0,
    ):
        self._qemu_img_path = qemu_img_path
        self.allowed_formats = tuple(allowed_formats)
        self._progress = ThrottledLogger(
            log.bind(tags=["image", "qemu", "progress"]), progress_interval_seconds
        )

    @property
    def qemu_img(self) -> str:
        path = self._qemu_img_path or shutil.which("qemu-img")
        if not path:
            raise ImageOperationError("qemu-img not found")
        return path

    def _run(self, command: list[str], error_cls=ImageOperationError, image=None) -> str:
        try:
            return run_checked_command(command)
        except (OSError, RuntimeError) as error:
            raise error_cls(str(error), image=image) from error

    def info(self, url: str) -> ImageInfo:
        source = source_argument(url)
        output = self._run([self.qemu_img, "info", "--output=json", source], image=source)
        try:
            data = json.loads(output)
            return ImageInfo.from_qemu_json(data)
        except (ValueError, TypeError, AttributeError) as error:
            raise ImageOperationError(
                f"Unable to parse qemu-img info output for {source}", image=source
            ) from error

    def convert_to_raw_stream(self, url: str, dest: str) -> None:
        source = source_argument(url)
        command = [self.qemu_img, "convert", "-t", "writeback", "-p", "-O", "raw", source, str(dest)]

        def on_progress(percent: float) -> None:
            self._progress.info(
                str(dest), f"Converting {source}: {percent:.2f}%", percent=percent
            )

        log.info(f"Converting {source} to raw image {dest}")
        try:
            run_checked_with_progress(command, progress_callback=on_progress)
        except (OSError, RuntimeError) as error:
            raise ImageConversionError(str(error), image=source) from error
        log.info(f"Conversion of {source} complete")

    def validate(self, url: str, available_size: int) -> None:
        source = source_argument(url)
        try:
            info = self.info(url)
        except ImageOperationError as error:
            raise ImageValidationError(
                f"Image validation failed: {error}", image=source
            ) from error
        if info.format not in self.allowed_formats:
            raise ImageValidationError(
                f"Image validation failed: unsupported format {info.format!r}",
                image=source,
            )
        if info.has_backing_file:
            raise ImageValidationError(
                f"Image validation failed: image has a backing file {info.backing_file}",
                image=source,
            )
        if info.virtual_size > available_size:
            raise ImageValidationError(
                "Image validation failed: virtual size "
                f"{info.virtual_size} is larger than available size {available_size}",
                image=source,
            )
        log.debug(
            f"Validated {source}: format={info.format} virtual_size={info.virtual_size}"
        )

    def resize(self, dest: str, size: int) -> None:
        size_bytes = parse_quantity(size)
        log.info(f"Resizing {dest} to {size_bytes} bytes")
        self._run(
            [self.qemu_img, "resize", "-f", "raw", str(dest), str(size_bytes)],
            error_cls=ImageResizeError,
            image=str(dest),
        )

    def create_blank_image(self, dest: str, size: int) -> None:
        size_bytes = parse_quantity(size)
        log.info(f"Creating blank raw image {dest} ({size_bytes} bytes)")
        self._run(
            [self.qemu_img, "create", "-f", "raw", str(dest), str(size_bytes)],
            image=str(dest),
        )
