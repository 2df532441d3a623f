"""
File validation and reading services.

Single Responsibility: Each class handles one specific task.
"""
from pathlib import Path
from typing import Tuple, Union

import aiofiles

from ...exceptions import ConfigError
from ...logging import get_logger


class FileValidator:
    """
    Validates files before upload.

    Responsibilities:
    - Check file existence
    - Verify file is not a directory
    - Get file size and file name
    """

    def validate(self, file_path: Union[str, Path]) -> Tuple[Path, int]:
        """
        Validate a file for upload.

        Args:
            file_path: Path to the file

        Returns:
            Tuple of (validated Path, file size in bytes)

        Raises:
            FileNotFoundError: If file doesn't exist
            ConfigError: If path is not a regular file or has no usable name
        """
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        if not path.is_file():
            raise ConfigError(f"Path is not a file: {path}")

        if not path.name:
            raise ConfigError(f"Invalid filename: {path}")

        return path, path.stat().st_size


class AsyncFileReader:
    """
    Asynchronous file reader.

    Uses aiofiles for non-blocking I/O operations.
    """

    def __init__(self):
        self._logger = get_logger('nunupy.upload.file')

    async def read_file(self, file_path: Path) -> bytes:
        """
        Read entire file.

        Raises:
            OSError: If the file cannot be read
        """
        async with aiofiles.open(file_path, 'rb') as f:
            data = await f.read()
        self._logger.debug(f"Read {len(data)} bytes from {file_path}")
        return data
