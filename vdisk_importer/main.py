import argparse
import sys
from functools import partial
from pathlib import Path

from vdisk_importer.config import settings
from vdisk_importer.image.qemu import QemuImgOperations
from vdisk_importer.importer import BlankDataSource, DataProcessor, FileDataSource
from vdisk_importer.logging import LoggerFactory, setup_logging
from vdisk_importer.storage.capacity import get_available_space_by_volume_mode
from vdisk_importer.storage.devices import resolve_data_file
from vdisk_importer.storage.exceptions import ImporterError, is_retryable

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_SCRATCH_REQUIRED = 2

SOURCES = ("file", "blank")


def build_parser():
    parser = argparse.ArgumentParser(
        description="Import a virtual disk image into a filesystem or block volume"
    )
    parser.add_argument(
        "--source",
        choices=SOURCES,
        default=settings.get_setting("source"),
        help="Kind of data source (default: %(default)s)",
    )
    parser.add_argument(
        "--endpoint",
        default=settings.get_setting("endpoint"),
        help="Path of the source image for the file source",
    )
    parser.add_argument(
        "--image-size",
        default=settings.get_setting("image_size"),
        help="Requested capacity, e.g. 10Gi; empty disables resizing",
    )
    parser.add_argument("--data-dir", default=settings.get_setting("data_dir"))
    parser.add_argument("--scratch-dir", default=settings.get_setting("scratch_dir"))
    parser.add_argument(
        "--data-file",
        default=settings.get_setting("image_file_name"),
        help="Image file name inside the data directory",
    )
    parser.add_argument("--block-device", default=settings.get_setting("block_device"))
    parser.add_argument(
        "--copy-to-scratch",
        action="store_true",
        default=settings.get_bool("copy_to_scratch"),
        help="Stage non-raw images in the scratch directory before converting",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--trace", action="store_true", help="Enable trace logging")
    parser.add_argument("--log-dir", type=Path, default=None)
    return parser


def build_data_source(args, image_operations, data_file=None):
    if args.source == "blank":
        capacity = None
        if data_file is not None:
            capacity = partial(get_available_space_by_volume_mode, args.data_dir, data_file)
        return BlankDataSource(args.image_size, image_operations, available_space=capacity)
    return FileDataSource(
        args.endpoint, image_operations, copy_to_scratch=args.copy_to_scratch
    )


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.source == "file" and not args.endpoint:
        parser.error("--endpoint is required for the file source")
    if args.source == "blank" and not args.image_size:
        parser.error("--image-size is required for the blank source")

    setup_logging(debug=args.debug, trace=args.trace, log_dir=args.log_dir)
    log = LoggerFactory.for_system()

    image_operations = QemuImgOperations(
        allowed_formats=settings.get_setting("allowed_formats"),
        progress_interval_seconds=settings.get_setting("progress_interval_seconds"),
    )
    data_file = resolve_data_file(args.data_dir, args.data_file, args.block_device)
    log.info(f"Importing {args.source} source into {data_file}")

    try:
        with build_data_source(args, image_operations, data_file) as source:
            processor = DataProcessor(
                source,
                data_file,
                args.data_dir,
                args.scratch_dir,
                args.image_size,
                image_operations=image_operations,
            )
            processor.process_data()
    except ImporterError as error:
        if is_retryable(error):
            log.warning(f"Import needs scratch space: {error}")
            return EXIT_SCRATCH_REQUIRED
        log.error(f"Import failed: {error}")
        return EXIT_FAILURE
    except OSError as error:
        log.error(f"Import failed: {error}")
        return EXIT_FAILURE
    log.success("Import complete")
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
