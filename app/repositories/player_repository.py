"""Repository for active player saves (``<players_dir>/<steamid>.json``)."""
import os

from .base import BaseRepository, validate_identifier


class PlayerRepository(BaseRepository):
    """Resolves and accesses the save file the game server loads for a player.

    Layout::

        <players_dir>/
            <steamid>.json
    """

    def __init__(self, players_dir: str) -> None:
        super().__init__(players_dir)

    def path_for(self, steamid: str) -> str:
        """Return the player file path for *steamid*."""
        steamid = validate_identifier(steamid, 'steamid')
        return os.path.join(self.base_dir, f"{steamid}.json")
