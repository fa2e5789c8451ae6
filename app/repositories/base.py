"""Repository base class used by all concrete repositories."""
import datetime
import logging
import os
import shutil
import tempfile
from typing import Optional, Tuple

from ..errors import (
    DeleteError, DirectoryNotEmpty, FileNotFound, FileTooLarge,
    InvalidParameter, NotADirectory, NotAFile, ReadError, WriteError,
)

BACKUP_TIMESTAMP_FORMAT = '%Y%m%d_%H%M%S'


def _format_size(size: int) -> str:
    if size % (1024 * 1024) == 0:
        return f"{size // (1024 * 1024)}MB"
    return f"{size} bytes"


def validate_identifier(value: str, field: str) -> str:
    """Return *value* as a string, rejecting anything that is not a bare name.

    Identifiers are joined onto a base directory, so separators, NUL and
    the ``.``/``..`` entries are refused.
    """
    value = str(value)
    if (not value or value in ('.', '..')
            or any(ch in value for ch in ('/', '\\', '\0'))):
        raise InvalidParameter(f"Invalid {field}: {value!r}")
    return value


class BaseRepository:
    """Thin wrapper around the filesystem calls every endpoint needs.

    Nothing is cached: each method performs fresh syscalls.  Missing files
    are reported through return values for existence checks and deletes, and
    through :class:`~app.errors.FileNotFound` for content reads.

    Writes use a write-then-rename strategy so a file is never left in a
    partially-written state.
    """

    def __init__(self, base_dir: Optional[str] = None) -> None:
        self.base_dir = base_dir
        self._log = logging.getLogger(f'slotkeeper.repository.{type(self).__name__}')

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def stat(self, path: str) -> Optional[os.stat_result]:
        """Return ``os.stat`` for *path*, or ``None`` if it does not exist."""
        try:
            return os.stat(path)
        except FileNotFoundError:
            return None
        except ValueError as exc:
            raise InvalidParameter(f"Invalid path: {exc}") from exc
        except OSError as exc:
            self._log.error("Error checking %s: %s", path, exc)
            raise ReadError(f"Error checking file: {exc}") from exc

    def exists(self, path: str) -> bool:
        return self.stat(path) is not None

    def read_bytes(self, path: str, max_size: Optional[int] = None) -> bytes:
        """Return the full contents of *path*.

        Raises:
            FileNotFound: *path* does not exist.
            NotAFile: *path* is a directory.
            FileTooLarge: *path* is bigger than *max_size* bytes.
            ReadError: the file could not be opened or read.
        """
        st = self.stat(path)
        if st is None:
            raise FileNotFound("File not found")
        if os.path.isdir(path):
            raise NotAFile("Path points to a directory, not a file")
        if max_size is not None and st.st_size > max_size:
            self._log.warning("File too large: %s (%d bytes)", path, st.st_size)
            raise FileTooLarge(f"File too large (max {_format_size(max_size)})")
        try:
            with open(path, 'rb') as fh:
                return fh.read()
        except OSError as exc:
            self._log.error("Failed to read %s: %s", path, exc)
            raise ReadError(f"Failed to read file: {exc}") from exc

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def ensure_dir(self, path: str) -> None:
        """Create *path* and any missing parents."""
        try:
            os.makedirs(path, exist_ok=True)
        except ValueError as exc:
            raise InvalidParameter(f"Invalid path: {exc}") from exc
        except OSError as exc:
            self._log.error("Failed to create directory %s: %s", path, exc)
            raise WriteError(f"Failed to create directory: {exc}") from exc

    def write_bytes(self, path: str, data: bytes) -> None:
        """Atomically write *data* to *path*, creating parent directories."""
        if '\0' in path:
            raise InvalidParameter("Invalid path: embedded null byte")
        dir_name = os.path.dirname(os.path.abspath(path))
        self.ensure_dir(dir_name)
        try:
            fd, tmp_path = tempfile.mkstemp(dir=dir_name, suffix='.tmp')
        except OSError as exc:
            self._log.error("Failed to write %s: %s", path, exc)
            raise WriteError(f"Failed to write file: {exc}") from exc
        try:
            with os.fdopen(fd, 'wb') as fh:
                fh.write(data)
            os.replace(tmp_path, path)
        except OSError as exc:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            self._log.error("Failed to write %s: %s", path, exc)
            raise WriteError(f"Failed to write file: {exc}") from exc

    def backup(self, path: str, backup_dir: str) -> Optional[str]:
        """Copy *path* into *backup_dir* and return the copy's path.

        Failures are logged and reported as ``None``; they never block the
        caller.
        """
        stamp = datetime.datetime.now().strftime(BACKUP_TIMESTAMP_FORMAT)
        backup_path = os.path.join(backup_dir, f"{os.path.basename(path)}_{stamp}.backup")
        try:
            os.makedirs(backup_dir, exist_ok=True)
            shutil.copyfile(path, backup_path)
        except OSError as exc:
            self._log.warning("Backup of %s failed: %s", path, exc)
            return None
        self._log.info("Backed up %s to %s", path, backup_path)
        return backup_path

    def delete_file(self, path: str,
                    backup_dir: Optional[str] = None) -> Tuple[bool, Optional[str]]:
        """Remove *path*, optionally backing it up first.

        Returns:
            ``(deleted, backup_path)``; ``deleted`` is ``False`` when the file
            did not exist.

        Raises:
            DeleteError: the file could not be removed or is still present
                afterwards.
        """
        if not self.exists(path):
            return False, None
        backup_path = self.backup(path, backup_dir) if backup_dir else None
        try:
            os.remove(path)
        except OSError as exc:
            self._log.error("Failed to delete %s: %s", path, exc)
            raise DeleteError(f"Failed to delete file: {exc}") from exc
        if self.exists(path):
            raise DeleteError("File still exists after deletion")
        return True, backup_path

    def delete_empty_dir(self, path: str) -> bool:
        """Remove the directory *path* if it has no entries.

        Returns:
            ``True`` if removed; ``False`` if it did not exist.

        Raises:
            NotADirectory: *path* exists but is not a directory.
            DirectoryNotEmpty: *path* still has at least one entry.
            DeleteError: ``os.rmdir`` failed.
        """
        if not self.exists(path):
            return False
        if not os.path.isdir(path):
            raise NotADirectory("Path is not a directory")
        with os.scandir(path) as entries:
            if next(entries, None) is not None:
                raise DirectoryNotEmpty("Directory is not empty")
        try:
            os.rmdir(path)
        except OSError as exc:
            self._log.error("Failed to delete directory %s: %s", path, exc)
            raise DeleteError(f"Failed to delete directory: {exc}") from exc
        return True
