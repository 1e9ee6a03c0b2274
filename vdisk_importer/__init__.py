"""Import virtual-disk images into persistent volumes."""

from .__version__ import __version__

__all__ = ["__version__"]
