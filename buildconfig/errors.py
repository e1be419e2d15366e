"""Error kinds raised by the build configuration step.

Every error is terminal: the CLI prints the message and exits non-zero.
"""

from __future__ import annotations


class BuildConfigError(Exception):
    """Base class for all step failures."""


class InvalidInput(BuildConfigError):
    """An input value is outside its allowed options."""


class PathResolutionError(BuildConfigError):
    """A local keystore path could not be made absolute."""


class DownloadError(BuildConfigError):
    """The remote keystore could not be fetched."""


class SerializationError(BuildConfigError):
    """The build configuration document could not be encoded."""


class PersistenceError(BuildConfigError):
    """build.json (or the scratch directory) could not be written."""


class PublishError(BuildConfigError):
    """The output path could not be handed off to the pipeline."""
