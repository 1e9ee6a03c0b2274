"""Contract for source-specific acquisition of image bytes.

A DataSource knows how to fetch one image from one origin. The DataProcessor
asks it what to do next and hands it destination paths; each method answers
with the next ProcessingPhase, or raises on failure.

A source that cannot stream straight into its destination raises
InvalidTransferPathError from transfer(); the engine reports that as
ScratchSpaceRequiredError so the caller can re-run the job with scratch space.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from vdisk_importer.domain import ProcessingPhase


class DataSource(ABC):
    """Source provider driven by the DataProcessor.

    Use as a context manager so close() runs exactly once on every exit path:

        with FileDataSource(path) as source:
            DataProcessor(source, ...).process_data()
    """

    _closed = False

    @abstractmethod
    def info(self) -> ProcessingPhase:
        """Inspect the source and report the first acquisition phase."""

    @abstractmethod
    def transfer(self, path: str) -> ProcessingPhase:
        """Transfer the source into the directory at path."""

    @abstractmethod
    def transfer_file(self, file_name: str) -> ProcessingPhase:
        """Transfer the source directly into the single file file_name."""

    @abstractmethod
    def process(self) -> ProcessingPhase:
        """Run format-specific post-processing on transferred data."""

    @abstractmethod
    def get_url(self) -> str:
        """Locator the image tooling should read from when converting."""

    def close(self) -> None:
        """Release readers, temporary files or connections."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self._closed:
            self._closed = True
            self.close()
