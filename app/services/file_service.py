"""Business logic for the generic by-path file endpoints."""
import datetime
import logging
import os
from typing import Any, Dict, Optional

from ..errors import InvalidJSON, MissingParameter
from ..repositories.file_repository import FileRepository
from . import slot_document
from .responses import delete_result

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
MOD_TIME_FORMAT = '%Y-%m-%d %H:%M:%S'


class FileService:
    """Reads, writes, inspects and deletes files at caller-supplied paths.

    Reads are capped at *max_size* bytes; the cap is checked with ``stat``
    before the file is opened.
    """

    def __init__(self, repository: FileRepository,
                 max_size: int = DEFAULT_MAX_FILE_SIZE,
                 backup_dir: Optional[str] = None) -> None:
        self._repo = repository
        self.max_size = max_size
        self.backup_dir = backup_dir
        self._log = logging.getLogger('slotkeeper.service.FileService')

    def content(self, file_path: str) -> Dict[str, Any]:
        """Return the text content of *file_path*."""
        raw = self._repo.read_bytes(file_path, self.max_size)
        self._log.info("Read %s, size: %d bytes", file_path, len(raw))
        return {
            'success': True,
            'content': raw.decode('utf-8', errors='replace'),
            'size': len(raw),
        }

    def write(self, file_path: str, data: Any,
              from_query: bool = False) -> Dict[str, Any]:
        """Write *data* pretty-printed as JSON to *file_path*.

        *data* is an already-decoded JSON value.  With *from_query* it is the
        raw text of a query-string parameter and is parsed as JSON first.

        Raises:
            MissingParameter: *data* is absent.
            InvalidJSON: query-string *data* does not parse.
        """
        if data is None or (from_query and not data.strip()):
            raise MissingParameter("Data is required")
        if from_query:
            try:
                data = slot_document.loads(data)
            except InvalidJSON as exc:
                raise InvalidJSON(f"Invalid JSON data: {exc}") from exc

        self._repo.write_bytes(file_path, slot_document.dumps(data))

        st = self._repo.stat(file_path)
        size = st.st_size if st is not None else 0
        self._log.info("Successfully wrote file: %s, size: %d bytes", file_path, size)
        return {
            'success': True,
            'message': f"File {os.path.basename(file_path)} successfully written",
            'file_path': file_path,
            'size': size,
        }

    def info(self, file_path: str) -> Dict[str, Any]:
        """Describe *file_path* without reading it."""
        st = self._repo.stat(file_path)
        if st is None:
            return {'success': True, 'exists': False, 'is_directory': False, 'size': 0}
        mod_time = datetime.datetime.fromtimestamp(st.st_mtime)
        return {
            'success': True,
            'exists': True,
            'is_directory': os.path.isdir(file_path),
            'size': st.st_size,
            'mod_time': mod_time.strftime(MOD_TIME_FORMAT),
            'mod_time_unix': int(st.st_mtime),
        }

    def delete(self, file_path: str, backup: bool = False) -> Dict[str, Any]:
        """Delete a file, or an empty directory.

        Deleting something that does not exist succeeds with
        ``deleted: false``.  Directories are never backed up.
        """
        if os.path.isdir(file_path):
            deleted = self._repo.delete_empty_dir(file_path)
            if deleted:
                self._log.info("Deleted empty directory %s", file_path)
            return delete_result(file_path, deleted, None)
        deleted, backup_path = self._repo.delete_file(
            file_path, self.backup_dir if backup else None)
        if deleted:
            self._log.info("Deleted %s", file_path)
        return delete_result(file_path, deleted, backup_path)
