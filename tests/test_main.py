"""Tests for the command line entry point."""

import pytest

from vdisk_importer import main
from vdisk_importer.domain import ImageInfo


@pytest.fixture
def volume(tmp_path):
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    source = tmp_path / "images" / "disk.img"
    source.parent.mkdir()
    source.write_bytes(b"\x01" * 2048)
    return data_dir, source


@pytest.fixture
def patched_main(mocker):
    """Patch logging setup and the image tooling used by main()."""
    mocker.patch("vdisk_importer.main.setup_logging")

    def install(operations):
        return mocker.patch("vdisk_importer.main.QemuImgOperations", return_value=operations)

    return install


def _args(data_dir, *extra):
    return [
        "--data-dir", str(data_dir),
        "--scratch-dir", str(data_dir.parent / "scratch"),
        "--block-device", "/dev/null-device",
        *extra,
    ]


class TestBuildParser:
    """Tests for build_parser()."""

    def test_defaults_from_settings(self):
        args = main.build_parser().parse_args(["--source", "blank"])

        assert args.source == "blank"
        assert args.debug is False

    def test_rejects_unknown_source(self):
        with pytest.raises(SystemExit):
            main.build_parser().parse_args(["--source", "http"])


class TestMain:
    """Tests for main()."""

    def test_raw_image_copied(self, volume, patched_main, image_operations_factory):
        data_dir, source = volume
        operations = image_operations_factory(info_result=ImageInfo(format="raw", virtual_size=2048))
        patched_main(operations)

        result = main.main(_args(data_dir, "--endpoint", str(source), "--image-size", ""))

        assert result == main.EXIT_SUCCESS
        assert (data_dir / "disk.img").read_bytes() == source.read_bytes()
        assert operations.calls_to("validate")[0][0] == str(data_dir / "disk.img")

    def test_qcow2_converted_in_place(self, volume, patched_main, image_operations_factory):
        data_dir, source = volume
        operations = image_operations_factory(info_result=ImageInfo(format="qcow2"))
        patched_main(operations)

        result = main.main(_args(data_dir, "--endpoint", str(source), "--image-size", ""))

        assert result == main.EXIT_SUCCESS
        assert operations.calls_to("convert") == [(str(source), str(data_dir / "disk.img"))]

    def test_scratch_space_required(self, volume, patched_main, image_operations_factory):
        data_dir, source = volume
        operations = image_operations_factory(info_result=ImageInfo(format="qcow2"))
        patched_main(operations)

        result = main.main(
            _args(data_dir, "--endpoint", str(source), "--image-size", "", "--copy-to-scratch")
        )

        assert result == main.EXIT_SCRATCH_REQUIRED
        assert operations.calls_to("convert") == []

    def test_validation_failure(self, volume, patched_main, image_operations_factory):
        data_dir, source = volume
        operations = image_operations_factory(
            info_result=ImageInfo(format="raw"),
            validate_error=RuntimeError("virtual size too large"),
        )
        patched_main(operations)

        result = main.main(_args(data_dir, "--endpoint", str(source)))

        assert result == main.EXIT_FAILURE

    def test_blank_image_created_and_resized(self, volume, patched_main, image_operations_factory):
        data_dir, _source = volume
        operations = image_operations_factory(info_result=ImageInfo(format="raw", virtual_size=0))
        patched_main(operations)

        result = main.main(_args(data_dir, "--source", "blank", "--image-size", "1Mi"))

        assert result == main.EXIT_SUCCESS
        target = str(data_dir / "disk.img")
        assert operations.calls_to("create_blank_image") == [(target, 2**20)]
        assert operations.calls_to("resize") == [(target, 2**20)]

    def test_file_source_requires_endpoint(self, volume, patched_main, image_operations):
        data_dir, _source = volume
        patched_main(image_operations)

        with pytest.raises(SystemExit):
            main.main(_args(data_dir, "--source", "file", "--endpoint", ""))

    def test_blank_source_requires_size(self, volume, patched_main, image_operations):
        data_dir, _source = volume
        patched_main(image_operations)

        with pytest.raises(SystemExit):
            main.main(_args(data_dir, "--source", "blank", "--image-size", ""))

    def test_blank_image_never_larger_than_volume(
        self, volume, patched_main, image_operations_factory, mocker
    ):
        """Test a request above free space creates and keeps the volume-sized image."""
        data_dir, _source = volume
        mocker.patch(
            "vdisk_importer.storage.capacity.os.statvfs",
            return_value=mocker.Mock(f_frsize=512, f_bavail=8),
        )
        operations = image_operations_factory(info_result=ImageInfo(format="raw", virtual_size=4096))
        patched_main(operations)

        result = main.main(_args(data_dir, "--source", "blank", "--image-size", "1Mi"))

        assert result == main.EXIT_SUCCESS
        target = str(data_dir / "disk.img")
        assert operations.calls_to("create_blank_image") == [(target, 4096)]
        assert operations.calls_to("resize") == []
