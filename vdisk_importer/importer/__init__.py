"""Disk image import pipeline.

Main Classes:
    - DataProcessor: phase engine running one import job
    - DataSource: contract implemented by source providers
    - BlankDataSource, FileDataSource: local source providers

Helper Functions:
    - resize_image(): clamp and apply a requested capacity to an image
"""

from .data_processor import DataProcessor, coerce_phase
from .data_source import DataSource
from .resize import resize_image
from .sources import BlankDataSource, FileDataSource

__all__ = [
    "BlankDataSource",
    "DataProcessor",
    "DataSource",
    "FileDataSource",
    "coerce_phase",
    "resize_image",
]
