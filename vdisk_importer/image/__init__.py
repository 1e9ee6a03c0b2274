"""Disk image tooling: the operations contract and the qemu-img adapter."""

from .operations import ImageOperations
from .qemu import QemuImgOperations

__all__ = ["ImageOperations", "QemuImgOperations"]
