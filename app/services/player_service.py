"""Business logic for active player saves."""
import logging
from typing import Any, Dict, Optional

from ..errors import InvalidJSON, ReadError
from ..repositories.player_repository import PlayerRepository
from . import slot_document
from .responses import delete_result


class PlayerService:
    """Existence checks, reads and deletes of ``<players_dir>/<steamid>.json``."""

    def __init__(self, repository: PlayerRepository,
                 backup_dir: Optional[str] = None) -> None:
        self._repo = repository
        self.backup_dir = backup_dir
        self._log = logging.getLogger('slotkeeper.service.PlayerService')

    def check(self, steamid: str) -> Dict[str, Any]:
        """Report whether *steamid* has an active save.

        A missing file is not an error; other stat failures are returned in
        the ``error`` field.
        """
        player_file = self._repo.path_for(steamid)
        try:
            exists = self._repo.exists(player_file)
        except ReadError as exc:
            return {'exists': False, 'file_path': player_file, 'error': str(exc)}
        return {'exists': exists, 'file_path': player_file}

    def content(self, steamid: str) -> Any:
        """Return the decoded player file.

        Raises:
            FileNotFound: the player has no active save.
            InvalidJSON: the file is not valid JSON.
        """
        raw = self._repo.read_bytes(self._repo.path_for(steamid))
        try:
            return slot_document.loads(raw)
        except InvalidJSON as exc:
            raise InvalidJSON(f"Invalid JSON in file: {exc}") from exc

    def delete(self, steamid: str, backup: bool = False) -> Dict[str, Any]:
        """Delete the active save, optionally copying it to the backup dir."""
        player_file = self._repo.path_for(steamid)
        deleted, backup_path = self._repo.delete_file(
            player_file, self.backup_dir if backup else None)
        if deleted:
            self._log.info("Deleted player file %s", player_file)
        return delete_result(player_file, deleted, backup_path)
