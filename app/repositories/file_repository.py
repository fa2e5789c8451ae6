"""Repository for caller-supplied file paths."""
from .base import BaseRepository


class FileRepository(BaseRepository):
    """Filesystem access with no base directory.

    Paths are used exactly as the caller passes them; relative paths resolve
    against the server's working directory.
    """

    def __init__(self) -> None:
        super().__init__(None)
