"""
Registry of in-flight upload sessions.

Flows insert a session right after the backend creates it and remove it
once the upload is completed or aborted. The cancellation path drains
whatever is left and aborts it.
"""
import asyncio
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .models import UploadSession

PathLike = Union[str, Path]


class SessionRegistry:
    """File path -> UploadSession map guarded by an asyncio lock."""

    def __init__(self):
        self._sessions: Dict[str, UploadSession] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def _key(file_path: PathLike) -> str:
        return str(file_path)

    async def register(self, file_path: PathLike, session: UploadSession) -> None:
        async with self._lock:
            self._sessions[self._key(file_path)] = session

    async def remove(self, file_path: PathLike) -> Optional[UploadSession]:
        async with self._lock:
            return self._sessions.pop(self._key(file_path), None)

    async def get(self, file_path: PathLike) -> Optional[UploadSession]:
        async with self._lock:
            return self._sessions.get(self._key(file_path))

    async def snapshot(self) -> List[Tuple[str, UploadSession]]:
        async with self._lock:
            return list(self._sessions.items())

    async def drain(self) -> List[Tuple[str, UploadSession]]:
        """Remove and return every registered session."""
        async with self._lock:
            items = list(self._sessions.items())
            self._sessions.clear()
            return items

    def __len__(self) -> int:
        return len(self._sessions)
