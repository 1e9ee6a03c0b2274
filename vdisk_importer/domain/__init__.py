"""Domain models for disk-image import jobs."""

from __future__ import annotations

from .models import ImageInfo, ProcessingPhase


__all__ = [
    "ImageInfo",
    "ProcessingPhase",
]
