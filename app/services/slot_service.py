"""Business logic for moving saves between player files and slots."""
import logging
from typing import Any, Dict, Optional

from ..errors import (
    DirectoryNotEmpty, FileNotFound, InvalidJSON, PlayerFileNotFound,
    SlotKeeperError,
)
from ..repositories.base import validate_identifier
from ..repositories.player_repository import PlayerRepository
from ..repositories.slot_repository import SlotRepository, SLOT_SUFFIX, slot_file_name
from . import slot_document
from .responses import delete_result

SLOT_ID_POLICIES = ('overwrite', 'preserve')


class SlotService:
    """Transfers, restores and writes slot files.

    Rules
    -----
    * Transfer moves ``<players>/<steamid>.json`` into
      ``<slots>/<steamid>/<old_slot_id>.json`` and then deletes the player
      file.  A failed delete is logged, not reported.
    * Restore copies a slot back over the player file.  A missing slot is
      first created as an empty slot.  Data comes only from the slot file.
    * Every slot written by transfer or restore carries ``slot_id`` equal to
      its own identifier.  With ``slot_id_policy='preserve'`` transfer keeps
      an existing ``slot_id`` from the player file instead.
    """

    def __init__(self, players: PlayerRepository, slots: SlotRepository,
                 slot_id_policy: str = 'overwrite',
                 backup_dir: Optional[str] = None) -> None:
        if slot_id_policy not in SLOT_ID_POLICIES:
            raise ValueError(f"Unknown slot_id_policy: {slot_id_policy!r}")
        self._players = players
        self._slots = slots
        self.slot_id_policy = slot_id_policy
        self.backup_dir = backup_dir
        self._log = logging.getLogger('slotkeeper.service.SlotService')

    # ------------------------------------------------------------------
    # Transfer / restore
    # ------------------------------------------------------------------

    def transfer(self, steamid: str, old_slot_id: str) -> Dict[str, Any]:
        """Move the active player save into the slot *old_slot_id*.

        Raises:
            PlayerFileNotFound: the player has no active save.
            ReadError, WriteError: filesystem failures.
        """
        old_slot_id = validate_identifier(old_slot_id, 'slot_id')
        player_file = self._players.path_for(steamid)
        slot_file = self._slots.path_for(steamid, old_slot_id)

        if not self._players.exists(player_file):
            self._log.info("Player file not found: %s", player_file)
            raise PlayerFileNotFound("Player file not found")

        content = self._players.read_bytes(player_file)
        overwrite = self.slot_id_policy == 'overwrite'
        doc = slot_document.normalize(content, old_slot_id, overwrite=overwrite)

        self._slots.ensure_dir(self._slots.dir_for(steamid))
        self._slots.write_bytes(slot_file, slot_document.dumps(doc))

        try:
            self._players.delete_file(player_file)
        except SlotKeeperError as exc:
            self._log.warning("Failed to delete player file %s: %s", player_file, exc)

        self._log.info("Slot %s transferred from %s to %s",
                       old_slot_id, player_file, slot_file)
        return {
            'success': True,
            'message': f"Slot {old_slot_id} successfully transferred",
            'player_file': player_file,
            'slot_file': slot_file,
        }

    def restore(self, steamid: str, slot_id: str) -> Dict[str, Any]:
        """Overwrite the player file with the contents of slot *slot_id*.

        Raises:
            InvalidJSON: the slot file is not a JSON object.
            ReadError, WriteError: filesystem failures.
        """
        slot_id = validate_identifier(slot_id, 'slot_id')
        slot_dir = self._slots.dir_for(steamid)
        slot_file = self._slots.path_for(steamid, slot_id)
        player_file = self._players.path_for(steamid)

        self._slots.ensure_dir(slot_dir)
        self._players.ensure_dir(self._players.base_dir)

        if not self._slots.exists(slot_file):
            self._slots.write_bytes(slot_file,
                                    slot_document.dumps(slot_document.empty_slot(slot_id)))
            self._log.info("Created empty slot: %s", slot_file)

        content = self._slots.read_bytes(slot_file)
        doc = slot_document.loads(content)
        if not isinstance(doc, dict):
            raise InvalidJSON("Invalid JSON in slot file: expected an object")
        doc['slot_id'] = slot_id

        self._players.write_bytes(player_file, slot_document.dumps(doc))

        self._log.info("Slot restored from %s to %s", slot_file, player_file)
        return {
            'success': True,
            'message': f"Slot {slot_id} successfully restored to player file",
            'player_file': player_file,
            'slot_file': slot_file,
        }

    # ------------------------------------------------------------------
    # Direct slot access
    # ------------------------------------------------------------------

    def create_empty(self, steamid: str, old_slot_id: str) -> Dict[str, Any]:
        """Write an empty slot document, replacing any existing slot."""
        old_slot_id = validate_identifier(old_slot_id, 'slot_id')
        slot_file = self._slots.path_for(steamid, old_slot_id)
        self._slots.write_bytes(
            slot_file,
            slot_document.dumps(slot_document.empty_slot(old_slot_id, created=False)),
        )
        self._log.info("Empty slot created for steamid %s, slot %s at %s",
                       steamid, old_slot_id, slot_file)
        return {
            'success': True,
            'message': f"Empty slot {old_slot_id} created successfully",
            'slot_file': slot_file,
        }

    def write(self, steamid: str, file_name: str, data: Any = None,
              from_query: bool = False) -> Dict[str, Any]:
        """Write *data* to the slot named *file_name*.

        *data* is an already-decoded JSON value, or with *from_query* the raw
        text of a query-string parameter.  Absent, empty, ``null`` or
        unparseable query text falls back to a default empty slot.

        Raises:
            InvalidJSON: *data* is not a JSON object.
        """
        file_name = slot_file_name(file_name)
        slot_id = file_name[:-len(SLOT_SUFFIX)]
        file_path = self._slots.path_for_file_name(steamid, file_name)

        doc = self._coerce_slot_data(data, slot_id, from_query)
        self._slots.write_bytes(file_path, slot_document.dumps(doc))

        self._log.info("Data written to slot file for steamid %s, file %s at %s",
                       steamid, file_name, file_path)
        return {
            'success': True,
            'message': f"Data successfully written to {file_name}",
            'file_path': file_path,
        }

    def _coerce_slot_data(self, data: Any, slot_id: str,
                          from_query: bool) -> Dict[str, Any]:
        if from_query and isinstance(data, str):
            if not data.strip():
                data = None
            else:
                try:
                    data = slot_document.loads(data)
                except InvalidJSON as exc:
                    self._log.warning("Ignoring unparseable slot data for %s: %s", slot_id, exc)
                    data = None
        if data is None or data == {}:
            self._log.debug("Using default data structure for slot %s", slot_id)
            return slot_document.empty_slot(slot_id)
        if not isinstance(data, dict):
            raise InvalidJSON("Slot data must be a JSON object")
        data['slot_id'] = slot_id
        return data

    def content(self, steamid: str, slot_id: str) -> Any:
        """Return the decoded slot file.

        Raises:
            FileNotFound: the slot does not exist.
            InvalidJSON: the slot file is not valid JSON.
        """
        slot_file = self._slots.path_for(steamid, slot_id)
        try:
            raw = self._slots.read_bytes(slot_file)
        except FileNotFound:
            raise FileNotFound("Slot file not found") from None
        try:
            return slot_document.loads(raw)
        except InvalidJSON as exc:
            raise InvalidJSON(f"Invalid JSON in slot file: {exc}") from exc

    def delete(self, steamid: str, slot_id: str, backup: bool = False) -> Dict[str, Any]:
        """Delete a slot file, then drop the player's slot directory if empty."""
        slot_file = self._slots.path_for(steamid, slot_id)
        deleted, backup_path = self._slots.delete_file(
            slot_file, self.backup_dir if backup else None)
        if deleted:
            try:
                self._slots.delete_empty_dir(self._slots.dir_for(steamid))
            except DirectoryNotEmpty:
                pass
            except SlotKeeperError as exc:
                self._log.warning("Could not clean up slot directory for %s: %s", steamid, exc)
        return delete_result(slot_file, deleted, backup_path)

