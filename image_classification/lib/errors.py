from pathlib import Path
from typing import Union


class DirectoryNotFound(FileNotFoundError):
    """Raised when an image root does not exist, is not a directory or cannot be read."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        super().__init__(f"Image directory {self.path} does not exist, is not a directory or cannot be read")
