"""
Protocol definitions for upload module.

The engine depends on these interfaces rather than on BuildsAPIClient,
so tests can drive it with an in-memory transport.
"""
from typing import Protocol, List, Optional, Callable, runtime_checkable
from pathlib import Path

from ..api.models import (
    UploadRequest,
    SinglePartUploadResponse,
    MultipartUploadResponse,
    PartUrlsResponse,
    UploadedPart,
)


# (build_id, upload_id or None, object_key)
SessionObserver = Callable[[str, Optional[str], str], None]


class UploadTransport(Protocol):
    """The remote operations the upload engine needs."""

    async def request_upload_url(self, request: UploadRequest) -> SinglePartUploadResponse:
        ...

    async def initiate_upload(self, request: UploadRequest) -> MultipartUploadResponse:
        ...

    async def request_part_urls(
        self,
        upload_id: str,
        object_key: str,
        part_numbers: List[int]
    ) -> PartUrlsResponse:
        ...

    async def upload_bytes(self, url: str, data: bytes) -> str:
        """PUT bytes and return the storage ETag."""
        ...

    async def upload_with_progress(
        self,
        url: str,
        data: bytes,
        on_progress: Optional[Callable[[int], None]] = None
    ) -> Optional[str]:
        ...

    async def complete_upload(self, build_id: str) -> None:
        ...

    async def complete_multipart_upload(
        self,
        build_id: str,
        upload_id: str,
        object_key: str,
        parts: List[UploadedPart]
    ) -> None:
        ...

    async def abort_upload(
        self,
        build_id: str,
        upload_id: Optional[str] = None,
        object_key: Optional[str] = None
    ) -> None:
        ...


@runtime_checkable
class ProgressSink(Protocol):
    """
    Receives byte-level progress for one file.

    update() is called with monotonically non-decreasing byte counts up to
    the total passed to set_total().
    """

    def set_total(self, total: int) -> None:
        ...

    def update(self, completed: int) -> None:
        ...

    def finish(self, message: str) -> None:
        ...


class FileReaderProtocol(Protocol):
    """Protocol for file reading operations."""

    async def read_file(self, file_path: Path) -> bytes:
        """Read an entire file into memory."""
        ...
