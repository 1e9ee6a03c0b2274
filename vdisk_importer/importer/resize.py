"""Capacity reconciliation for imported images."""

from vdisk_importer.image.operations import ImageOperations
from vdisk_importer.logging import get_logger
from vdisk_importer.storage.devices import human_size
from vdisk_importer.storage.exceptions import ImageResizeError
from vdisk_importer.storage.quantity import is_blank_quantity, parse_quantity

log = get_logger(source=__name__, tags=["resize"])


def resize_image(
    data_file: str,
    image_size: str,
    total_target_space: int,
    image_operations: ImageOperations,
) -> None:
    """Resize the image at data_file to the requested capacity.

    The target is the lesser of the requested size and total_target_space.
    Nothing is done when the image already has exactly that virtual size.

    Args:
        data_file: Path of the raw destination image
        image_size: Requested capacity (e.g., "10Gi"); must not be blank
        total_target_space: Bytes available at the destination
        image_operations: Image tooling used to probe and resize

    Raises:
        ImageResizeError: If image_size is blank
        InvalidQuantityError: If image_size cannot be parsed
        Exception: Whatever the image tooling raises from info or resize
    """
    info = image_operations.info(data_file)
    if is_blank_quantity(image_size):
        raise ImageResizeError("Image resize called with blank resize", image=data_file)

    requested = parse_quantity(image_size)
    target = min(requested, total_target_space)
    if target != requested:
        log.info(
            "Calculated new size is less than requested size, resizing to available "
            f"space: requested {human_size(requested)}, available {human_size(target)}"
        )
    if target == info.virtual_size:
        log.debug(f"{data_file} already has virtual size {target}, not resizing")
        return
    log.info(f"Expanding image size from {info.virtual_size} to {target} bytes")
    image_operations.resize(data_file, target)
