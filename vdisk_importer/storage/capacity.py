"""Available-capacity estimation for import destinations.

A destination is either a filesystem directory holding the image file, or a
raw block device with no directory structure. Filesystem capacity comes from
statvfs; block-device capacity comes from a probe function that callers can
replace (the default asks `blockdev` for the device size).

Errors are never turned into a zero capacity: an unreadable destination must
fail the job.
"""

import os
import shutil
from typing import Callable

from vdisk_importer.logging import get_logger

from .command_runners import run_checked_command
from .exceptions import CapacityProbeError

log = get_logger(source=__name__, tags=["capacity"])

BlockCapacityProbe = Callable[[str], int]


def get_available_space(path) -> int:
    """Return the free bytes available to unprivileged users under path.

    Raises:
        OSError: If the filesystem cannot be queried
    """
    stats = os.statvfs(path)
    return stats.f_frsize * stats.f_bavail


def get_available_space_block(device_path) -> int:
    """Return the size in bytes of a block device.

    Raises:
        CapacityProbeError: If blockdev is missing, fails, or prints garbage
    """
    blockdev_path = shutil.which("blockdev")
    if not blockdev_path:
        raise CapacityProbeError(str(device_path), "blockdev not found")
    try:
        output = run_checked_command([blockdev_path, "--getsize64", str(device_path)])
    except RuntimeError as error:
        raise CapacityProbeError(str(device_path), str(error)) from error
    try:
        return int(output.strip())
    except ValueError as error:
        raise CapacityProbeError(
            str(device_path), f"unexpected blockdev output {output.strip()!r}"
        ) from error


def get_available_space_by_volume_mode(
    data_dir,
    data_file,
    block_probe: BlockCapacityProbe = get_available_space_block,
) -> int:
    """Return usable bytes at the destination.

    Args:
        data_dir: Filesystem staging directory; absent for block destinations
        data_file: Destination image path or block device node
        block_probe: Capacity probe used when data_dir is not a directory

    Returns:
        Free bytes on the data_dir filesystem, or the block device size
    """
    if os.path.isdir(data_dir):
        available = get_available_space(data_dir)
        log.debug(f"Filesystem destination {data_dir}: {available} bytes available")
        return available
    available = block_probe(str(data_file))
    log.debug(f"Block destination {data_file}: {available} bytes available")
    return available
