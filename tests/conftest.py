"""
Pytest configuration and shared fixtures for vdisk-importer tests.

This module provides fake data sources and fake image tooling so the phase
engine can be exercised without qemu-img, block devices or network access.
"""

from typing import List, Optional

import pytest

from vdisk_importer.domain import ImageInfo, ProcessingPhase
from vdisk_importer.image.operations import ImageOperations
from vdisk_importer.importer import DataProcessor
from vdisk_importer.importer.data_source import DataSource
from vdisk_importer.storage.exceptions import InvalidTransferPathError

SMALL_ACTUAL_SIZE = 1024
SMALL_VIRTUAL_SIZE = 1024
FAKE_URL = "http://fakeurl-notreal.fake"
BLOCK_DEVICE_SIZE = 100000

SMALL_IMAGE_INFO = ImageInfo(
    format="", backing_file="", virtual_size=SMALL_VIRTUAL_SIZE, actual_size=SMALL_ACTUAL_SIZE
)
ZERO_IMAGE_INFO = ImageInfo(format="", backing_file="", virtual_size=0, actual_size=0)


# ==============================================================================
# Data Source Fakes
# ==============================================================================


class MockDataSource(DataSource):
    """Data source answering with preset phases and recording every call."""

    def __init__(
        self,
        info_response=None,
        transfer_response=None,
        process_response=None,
        url: str = "",
        needs_scratch: bool = False,
    ):
        self.info_response = info_response
        self.transfer_response = transfer_response
        self.process_response = process_response
        self.url = url
        self.needs_scratch = needs_scratch
        self.transfer_path: Optional[str] = None
        self.transfer_file_name: Optional[str] = None
        self.called_phases: List = []
        self.close_count = 0

    def info(self):
        self.called_phases.append(ProcessingPhase.INFO)
        if self.info_response == ProcessingPhase.ERROR:
            raise RuntimeError("Info errored")
        return self.info_response

    def transfer(self, path):
        self.called_phases.append(self.info_response)
        self.transfer_path = path
        if self.transfer_response == ProcessingPhase.ERROR:
            if self.needs_scratch:
                raise InvalidTransferPathError(path)
            raise RuntimeError("Transfer errored")
        return self.transfer_response

    def transfer_file(self, file_name):
        self.called_phases.append(ProcessingPhase.TRANSFER_DATA_FILE)
        self.transfer_file_name = file_name
        if self.transfer_response == ProcessingPhase.ERROR:
            raise RuntimeError("TransferFile errored")
        return self.transfer_response

    def process(self):
        self.called_phases.append(ProcessingPhase.PROCESS)
        if self.process_response == ProcessingPhase.ERROR:
            raise RuntimeError("Process errored")
        return self.process_response

    def get_url(self):
        return self.url

    def close(self):
        self.close_count += 1


# ==============================================================================
# Image Tooling Fakes
# ==============================================================================


class FakeImageOperations(ImageOperations):
    """Image tooling double with a configurable error per operation."""

    def __init__(
        self,
        convert_error: Optional[Exception] = None,
        resize_error: Optional[Exception] = None,
        info_result: Optional[ImageInfo] = SMALL_IMAGE_INFO,
        info_error: Optional[Exception] = None,
        validate_error: Optional[Exception] = None,
        blank_error: Optional[Exception] = None,
    ):
        self.convert_error = convert_error
        self.resize_error = resize_error
        self.info_result = info_result
        self.info_error = info_error
        self.validate_error = validate_error
        self.blank_error = blank_error
        self.calls: List[tuple] = []

    def calls_to(self, name: str) -> List[tuple]:
        return [call[1:] for call in self.calls if call[0] == name]

    def info(self, url):
        self.calls.append(("info", url))
        if self.info_error:
            raise self.info_error
        return self.info_result

    def convert_to_raw_stream(self, url, dest):
        self.calls.append(("convert", url, dest))
        if self.convert_error:
            raise self.convert_error

    def validate(self, url, available_size):
        self.calls.append(("validate", url, available_size))
        if self.validate_error:
            raise self.validate_error

    def resize(self, dest, size):
        self.calls.append(("resize", dest, size))
        if self.resize_error:
            raise self.resize_error

    def create_blank_image(self, dest, size):
        self.calls.append(("create_blank_image", dest, size))
        if self.blank_error:
            raise self.blank_error


def all_errors_image_operations() -> FakeImageOperations:
    error = RuntimeError("image tooling should not succeed in this test")
    return FakeImageOperations(
        convert_error=error,
        resize_error=error,
        info_result=None,
        info_error=error,
        validate_error=error,
        blank_error=error,
    )


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def image_operations() -> FakeImageOperations:
    """Fixture providing image tooling where every operation succeeds."""
    return FakeImageOperations()


@pytest.fixture
def failing_image_operations() -> FakeImageOperations:
    """Fixture providing image tooling where every operation fails."""
    return all_errors_image_operations()


@pytest.fixture
def block_probe():
    """
    Fixture providing a fake block device capacity probe.

    Returns:
        Callable recording each probed path in its `calls` attribute.
    """

    def probe(path):
        probe.calls.append(path)
        return BLOCK_DEVICE_SIZE

    probe.calls = []
    return probe


@pytest.fixture
def make_processor(image_operations, block_probe):
    """
    Fixture providing a DataProcessor factory with test defaults.

    Defaults mirror an import into a block volume: "dataDir" does not exist,
    so capacity comes from the fake block probe.
    """

    def factory(
        source,
        data_file="dest",
        data_dir="dataDir",
        scratch_data_dir="scratchDataDir",
        request_image_size="1G",
        operations=None,
        probe=None,
    ):
        return DataProcessor(
            source,
            data_file,
            data_dir,
            scratch_data_dir,
            request_image_size,
            image_operations=operations or image_operations,
            block_capacity_probe=probe or block_probe,
        )

    return factory


@pytest.fixture
def data_source_factory():
    """Fixture providing the MockDataSource class for building sources."""
    return MockDataSource


@pytest.fixture
def image_operations_factory():
    """Fixture providing the FakeImageOperations class for custom errors."""
    return FakeImageOperations


@pytest.fixture
def small_image_info() -> ImageInfo:
    """Fixture providing probe results for a 1KiB image."""
    return SMALL_IMAGE_INFO


@pytest.fixture
def zero_image_info() -> ImageInfo:
    """Fixture providing probe results for an empty image."""
    return ZERO_IMAGE_INFO


@pytest.fixture
def mock_subprocess_run(mocker):
    """
    Fixture providing a mock for subprocess.run.

    Returns:
        Mock object for subprocess.run
    """
    return mocker.patch("subprocess.run")


@pytest.fixture
def mock_popen(mocker):
    """
    Fixture providing a mock for subprocess.Popen.

    Returns:
        Mock object for subprocess.Popen
    """
    return mocker.patch("subprocess.Popen")


@pytest.fixture
def temp_settings_file(tmp_path):
    """
    Fixture providing a temporary settings file path.

    Returns:
        Path to a settings.json inside a temporary config directory
    """
    settings_dir = tmp_path / "config"
    settings_dir.mkdir()
    return settings_dir / "settings.json"
