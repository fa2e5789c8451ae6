"""Repository for stored slots (``<slots_dir>/<steamid>/<slot_id>.json``)."""
import os

from .base import BaseRepository, validate_identifier

SLOT_SUFFIX = '.json'


def slot_file_name(file_name: str) -> str:
    """Append ``.json`` to *file_name* unless it already ends with it."""
    file_name = validate_identifier(file_name, 'file_name')
    if os.path.splitext(file_name)[1] != SLOT_SUFFIX:
        file_name += SLOT_SUFFIX
    return file_name


class SlotRepository(BaseRepository):
    """Resolves and accesses the per-player slot directory.

    Layout::

        <slots_dir>/
            <steamid>/
                <slot_id>.json
    """

    def __init__(self, slots_dir: str) -> None:
        super().__init__(slots_dir)

    def dir_for(self, steamid: str) -> str:
        """Return the directory holding every slot of *steamid*."""
        return os.path.join(self.base_dir, validate_identifier(steamid, 'steamid'))

    def path_for(self, steamid: str, slot_id: str) -> str:
        """Return the slot file path for (*steamid*, *slot_id*)."""
        slot_id = validate_identifier(slot_id, 'slot_id')
        return os.path.join(self.dir_for(steamid), f"{slot_id}{SLOT_SUFFIX}")

    def path_for_file_name(self, steamid: str, file_name: str) -> str:
        """Like :meth:`path_for` but accepts a name with or without ``.json``."""
        return os.path.join(self.dir_for(steamid), slot_file_name(file_name))
