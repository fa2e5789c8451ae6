"""Exceptions raised by the repository and service layers.

The HTTP layer turns any :class:`SlotKeeperError` into a JSON payload with
``success: false`` and ``error: str(exc)``.  Only :class:`MissingParameter`
and :class:`InvalidParameter` are mapped to a 400 response.
"""


class SlotKeeperError(Exception):
    """Base class for all errors reported back to API callers."""


class ConfigError(SlotKeeperError):
    """Raised when the configuration file or environment is invalid."""


class MissingParameter(SlotKeeperError):
    """Raised when a required request field is absent or empty."""


class InvalidParameter(SlotKeeperError):
    """Raised when an identifier could escape its base directory."""


class InvalidJSON(SlotKeeperError):
    """Raised when a document cannot be parsed as JSON."""


class FileNotFound(SlotKeeperError):
    """Raised when a file that must be read does not exist."""


class PlayerFileNotFound(FileNotFound):
    """Raised when a transfer is requested for a player without a save."""


class NotAFile(SlotKeeperError):
    """Raised when a content read targets a directory."""


class NotADirectory(SlotKeeperError):
    """Raised when a directory operation targets something else."""


class DirectoryNotEmpty(SlotKeeperError):
    """Raised when removing a directory that still has entries."""


class FileTooLarge(SlotKeeperError):
    """Raised when a file exceeds the configured read limit."""


class ReadError(SlotKeeperError):
    """Raised when an ``OSError`` occurs while reading."""


class WriteError(SlotKeeperError):
    """Raised when an ``OSError`` occurs while writing."""


class DeleteError(SlotKeeperError):
    """Raised when a file could not be removed."""
