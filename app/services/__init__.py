"""Services package: expose all concrete services from one import."""
from .file_service import FileService
from .player_service import PlayerService
from .slot_service import SlotService

__all__ = [
    'FileService',
    'PlayerService',
    'SlotService',
]
