"""Pytest fixtures for NunuPy tests."""
import asyncio
import os
import tempfile
from pathlib import Path
from typing import List, Optional

import pytest

from nunupy.core.api.models import (
    MultipartUploadResponse,
    PartUploadUrl,
    PartUrlsResponse,
    SinglePartUploadResponse,
    UploadedPart,
)
from nunupy.core.config import Config
from nunupy.core.exceptions import ApiError, UploadError
from nunupy.core.upload.planner import expected_part_count


class FakeTransport:
    """
    In-memory UploadTransport.

    Records every call, tracks how many part transfers run at once and can
    be told to fail specific operations.
    """

    def __init__(
        self,
        part_size: int = 4,
        fail_parts=(),
        fail_initiate: bool = False,
        fail_complete: bool = False,
        fail_abort: bool = False,
        delay: float = 0.0,
        gate: Optional[asyncio.Event] = None,
        abort_gate: Optional[asyncio.Event] = None
    ):
        self.part_size = part_size
        self.fail_parts = set(fail_parts)
        self.fail_initiate = fail_initiate
        self.fail_complete = fail_complete
        self.fail_abort = fail_abort
        self.delay = delay
        self.gate = gate
        self.abort_gate = abort_gate

        self.calls: List[tuple] = []
        self.part_batches: List[List[int]] = []
        self.uploaded: dict = {}
        self.completed_parts: Optional[List[UploadedPart]] = None
        self.aborted: List[tuple] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self._builds = 0

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def _next_build(self) -> str:
        self._builds += 1
        return f"build-{self._builds}"

    async def request_upload_url(self, request):
        self.calls.append(('request_upload_url', request))
        if self.fail_initiate:
            raise ApiError("Upload request failed - Status 500: boom", status=500)
        build_id = self._next_build()
        return SinglePartUploadResponse(
            build_id=build_id,
            upload_url=f"https://storage.test/single/{build_id}",
            object_key=f"objects/{build_id}/{request.file_name}"
        )

    async def initiate_upload(self, request):
        self.calls.append(('initiate_upload', request))
        if self.fail_initiate:
            raise ApiError("Initiate upload failed - Status 500: boom", status=500)
        build_id = self._next_build()
        return MultipartUploadResponse(
            build_id=build_id,
            upload_id=f"upload-{build_id}",
            object_key=f"objects/{build_id}/{request.file_name}",
            total_parts=expected_part_count(request.file_size, self.part_size),
            part_size=self.part_size
        )

    async def request_part_urls(self, upload_id, object_key, part_numbers):
        self.calls.append(('request_part_urls', list(part_numbers)))
        self.part_batches.append(list(part_numbers))
        return PartUrlsResponse(upload_urls=[
            PartUploadUrl(part_number=n, url=f"https://storage.test/{upload_id}/{n}")
            for n in part_numbers
        ])

    async def upload_bytes(self, url, data):
        part_number = int(url.rsplit('/', 1)[1])
        self.calls.append(('upload_bytes', part_number))
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(self.delay)
            if part_number in self.fail_parts:
                raise UploadError(f"Status 500: part {part_number} rejected", status=500)
            self.uploaded[part_number] = bytes(data)
            return f'"etag-{part_number}"'
        finally:
            self.in_flight -= 1

    async def upload_with_progress(self, url, data, on_progress=None):
        self.calls.append(('upload_with_progress', url))
        if self.gate is not None:
            await self.gate.wait()
        sent = 0
        step = max(1, len(data) // 4)
        for offset in range(0, len(data), step):
            sent += len(data[offset:offset + step])
            if on_progress:
                on_progress(sent)
            await asyncio.sleep(0)
        if 'single' in self.fail_parts:
            raise UploadError("Status 403: denied", status=403)
        self.uploaded['single'] = bytes(data)
        return '"etag-single"'

    async def complete_upload(self, build_id):
        self.calls.append(('complete_upload', build_id))
        if self.fail_complete:
            raise ApiError("Complete failed - Status 500: boom", status=500)

    async def complete_multipart_upload(self, build_id, upload_id, object_key, parts):
        self.calls.append(('complete_multipart_upload', build_id))
        if self.fail_complete:
            raise ApiError("Complete multipart failed - Status 500: boom", status=500)
        self.completed_parts = list(parts)

    async def abort_upload(self, build_id, upload_id=None, object_key=None):
        self.calls.append(('abort_upload', build_id, upload_id, object_key))
        if self.abort_gate is not None:
            await self.abort_gate.wait()
        if self.fail_abort:
            raise ApiError("Abort upload failed - Status 500: boom", status=500)
        self.aborted.append((build_id, upload_id, object_key))


class RecordingSink:
    """ProgressSink that remembers every update."""

    def __init__(self):
        self.total = None
        self.updates: List[int] = []
        self.finished: Optional[str] = None

    def set_total(self, total):
        self.total = total

    def update(self, completed):
        self.updates.append(completed)

    def finish(self, message):
        self.finished = message


@pytest.fixture
def fake_transport():
    """Transport with 4-byte parts."""
    return FakeTransport()


@pytest.fixture
def make_transport():
    """Factory for configured fake transports."""
    return FakeTransport


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def config():
    """Config pointing at a test API."""
    return Config(token="test-token", project_id="proj-1", api_url="https://api.test")


@pytest.fixture
def make_file():
    """Create temporary files with given content; removed after the test."""
    paths = []

    def _make(content: bytes, suffix: str = ".apk") -> Path:
        fd, path = tempfile.mkstemp(suffix=suffix)
        os.write(fd, content)
        os.close(fd)
        paths.append(path)
        return Path(path)

    yield _make

    for path in paths:
        if os.path.exists(path):
            os.unlink(path)
