"""Repository package: expose all concrete repositories from one import."""
from .base import BaseRepository, validate_identifier
from .player_repository import PlayerRepository
from .slot_repository import SlotRepository, slot_file_name
from .file_repository import FileRepository

__all__ = [
    'BaseRepository',
    'PlayerRepository',
    'SlotRepository',
    'FileRepository',
    'slot_file_name',
    'validate_identifier',
]
