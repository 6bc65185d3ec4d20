"""This package allows to control Alexa media devices from the command line."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("alexa-media-controller")
except PackageNotFoundError:
    # Fallback for source checkouts without installed metadata
    __version__ = "dev"

__all__ = ["__version__"]
