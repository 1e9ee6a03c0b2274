"""Destination volume helpers.

An import destination is either a filesystem volume mounted at a data
directory, holding a single image file, or a raw block device node published
into the container.
"""

import os
import stat
from pathlib import Path


def human_size(size_bytes):
    if size_bytes is None:
        return "0B"
    size = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size < 1024.0:
            return f"{size:.1f}{unit}"
        size /= 1024.0
    return f"{size:.1f}PB"


def is_block_device(path) -> bool:
    """Return True if path is a block device node."""
    try:
        return stat.S_ISBLK(os.stat(path).st_mode)
    except OSError:
        return False


def resolve_data_file(data_dir, image_file_name: str, block_device) -> str:
    """Pick the destination image path for a job.

    Filesystem volumes get image_file_name inside data_dir; when data_dir does
    not exist the volume is a block device and block_device is the target.
    """
    if os.path.isdir(data_dir):
        return str(Path(data_dir) / image_file_name)
    return str(block_device)
