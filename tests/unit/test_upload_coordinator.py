"""Tests for the upload coordinator."""
import asyncio
from unittest.mock import patch

import pytest

from nunupy.core.api.models import BuildPlatform, UploadedPart
from nunupy.core.exceptions import ApiError, ConfigError, UploadError
from nunupy.core.upload.coordinator import (
    MAX_SINGLE_PART_SIZE,
    UploadCoordinator,
    UploadState,
    use_multipart,
    verify_parts,
)
from nunupy.core.upload.models import UploadOptions

CONTENT = b"0123456789ABCDEFGHIJ"  # 20 bytes, 5 parts of 4


def options(**kwargs):
    kwargs.setdefault('name', "Nightly")
    kwargs.setdefault('platform', BuildPlatform.ANDROID)
    return UploadOptions(**kwargs)


class TestRouting:
    """Test suite for single-part / multipart routing."""

    def test_threshold(self):
        assert MAX_SINGLE_PART_SIZE == 3 * 1024 ** 3
        assert use_multipart(MAX_SINGLE_PART_SIZE) is False
        assert use_multipart(MAX_SINGLE_PART_SIZE + 1) is True

    def test_force(self):
        assert use_multipart(10, force_multipart=True) is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("size, expected_call", [
        (MAX_SINGLE_PART_SIZE, 'request_upload_url'),
        (MAX_SINGLE_PART_SIZE + 1, 'initiate_upload'),
    ])
    async def test_coordinator_routes_by_size(self, make_transport, make_file, size, expected_call):
        """Test the size seen by the validator decides the flow."""
        path = make_file(b"x")
        transport = make_transport(fail_initiate=True)
        coordinator = UploadCoordinator(transport)

        with patch.object(coordinator._validator, 'validate', return_value=(path, size)):
            with pytest.raises(ApiError):
                await coordinator.upload(path, options())

        assert [call[0] for call in transport.calls] == [expected_call]
        request = transport.calls[0][1]
        assert request.file_size == size
        assert request.multipart is (expected_call == 'initiate_upload')


class TestSinglePartUpload:
    """Test suite for the single-part flow."""

    @pytest.mark.asyncio
    async def test_success(self, fake_transport, make_file, sink):
        path = make_file(CONTENT)
        coordinator = UploadCoordinator(fake_transport)

        result = await coordinator.upload(path, options(progress=sink))

        assert result.build_id == "build-1"
        assert result.multipart is False
        assert result.file_size == len(CONTENT)
        assert [c[0] for c in fake_transport.calls] == [
            'request_upload_url', 'upload_with_progress', 'complete_upload'
        ]
        assert fake_transport.uploaded['single'] == CONTENT
        assert coordinator.state_of(path) == UploadState.DONE
        assert len(coordinator.registry) == 0

    @pytest.mark.asyncio
    async def test_progress_monotonic_to_size(self, fake_transport, make_file, sink):
        path = make_file(CONTENT)
        coordinator = UploadCoordinator(fake_transport)

        await coordinator.upload(path, options(progress=sink))

        assert sink.total == len(CONTENT)
        assert sink.updates == sorted(sink.updates)
        assert sink.updates[-1] == len(CONTENT)
        assert sink.finished == "Upload complete"

    @pytest.mark.asyncio
    async def test_session_observer_called_once(self, fake_transport, make_file):
        path = make_file(CONTENT)
        seen = []
        coordinator = UploadCoordinator(fake_transport)

        await coordinator.upload(path, options(on_session=lambda *args: seen.append(args)))

        assert seen == [("build-1", None, f"objects/build-1/{path.name}")]

    @pytest.mark.asyncio
    async def test_failure_does_not_abort(self, make_transport, make_file):
        path = make_file(CONTENT)
        transport = make_transport(fail_parts={'single'})
        coordinator = UploadCoordinator(transport)

        with pytest.raises(UploadError):
            await coordinator.upload(path, options())

        assert transport.count('abort_upload') == 0
        assert transport.count('complete_upload') == 0
        assert coordinator.state_of(path) == UploadState.FAILED
        assert len(coordinator.registry) == 0


class TestMultipartUpload:
    """Test suite for the multipart flow."""

    @pytest.mark.asyncio
    async def test_forced_multipart(self, fake_transport, make_file, sink):
        path = make_file(CONTENT)
        coordinator = UploadCoordinator(fake_transport)

        result = await coordinator.upload(
            path, options(force_multipart=True, concurrency=2, progress=sink)
        )

        assert result.multipart is True
        assert fake_transport.count('initiate_upload') == 1
        assert fake_transport.count('request_part_urls') == 3
        assert fake_transport.count('complete_multipart_upload') == 1
        assert fake_transport.count('abort_upload') == 0
        assert fake_transport.completed_parts == [
            UploadedPart(part_number=n, etag=f'"etag-{n}"') for n in range(1, 6)
        ]
        assert b"".join(fake_transport.uploaded[n] for n in range(1, 6)) == CONTENT
        assert sink.updates[-1] == len(CONTENT)
        assert sink.finished == "All parts uploaded"

    @pytest.mark.asyncio
    async def test_empty_file(self, fake_transport, make_file):
        path = make_file(b"")
        coordinator = UploadCoordinator(fake_transport)

        result = await coordinator.upload(path, options(force_multipart=True))

        assert result.parts == [UploadedPart(part_number=1, etag='"etag-1"')]
        assert fake_transport.uploaded[1] == b""

    @pytest.mark.asyncio
    async def test_session_observer_gets_upload_id(self, fake_transport, make_file):
        path = make_file(CONTENT)
        seen = []
        coordinator = UploadCoordinator(fake_transport)

        await coordinator.upload(
            path, options(force_multipart=True, on_session=lambda *args: seen.append(args))
        )

        assert len(seen) == 1
        assert seen[0][:2] == ("build-1", "upload-build-1")

    @pytest.mark.asyncio
    async def test_part_failure_aborts_once(self, make_transport, make_file):
        path = make_file(CONTENT)
        transport = make_transport(fail_parts={2})
        coordinator = UploadCoordinator(transport)

        with pytest.raises(UploadError):
            await coordinator.upload(path, options(force_multipart=True, concurrency=2))

        assert transport.count('complete_multipart_upload') == 0
        assert transport.count('abort_upload') == 1
        assert transport.aborted == [("build-1", "upload-build-1", f"objects/build-1/{path.name}")]
        assert coordinator.state_of(path) == UploadState.ABORTED
        assert len(coordinator.registry) == 0

    @pytest.mark.asyncio
    async def test_complete_failure_aborts(self, make_transport, make_file):
        path = make_file(CONTENT)
        transport = make_transport(fail_complete=True)
        coordinator = UploadCoordinator(transport)

        with pytest.raises(ApiError, match="Complete multipart"):
            await coordinator.upload(path, options(force_multipart=True))

        assert transport.count('abort_upload') == 1

    @pytest.mark.asyncio
    async def test_abort_failure_keeps_original_error(self, make_transport, make_file):
        path = make_file(CONTENT)
        transport = make_transport(fail_parts={1}, fail_abort=True)
        coordinator = UploadCoordinator(transport)

        with pytest.raises(UploadError):
            await coordinator.upload(path, options(force_multipart=True))

        assert transport.count('abort_upload') == 1

    @pytest.mark.asyncio
    async def test_initiate_failure_has_nothing_to_abort(self, make_transport, make_file):
        path = make_file(CONTENT)
        transport = make_transport(fail_initiate=True)
        coordinator = UploadCoordinator(transport)

        with pytest.raises(ApiError):
            await coordinator.upload(path, options(force_multipart=True))

        assert transport.count('abort_upload') == 0
        assert coordinator.state_of(path) == UploadState.FAILED

    @pytest.mark.asyncio
    async def test_cancelled_flow_stays_registered(self, make_transport, make_file):
        """Test cancellation leaves the session for abort_all."""
        path = make_file(CONTENT)
        started = asyncio.Event()
        transport = make_transport(gate=asyncio.Event())
        coordinator = UploadCoordinator(transport)

        task = asyncio.create_task(coordinator.upload(
            path, options(force_multipart=True, on_session=lambda *args: started.set())
        ))
        await started.wait()
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(coordinator.registry) == 1
        assert transport.count('abort_upload') == 0

        aborted = await coordinator.abort_all()

        assert [s.build_id for s in aborted] == ["build-1"]
        assert transport.count('abort_upload') == 1
        assert coordinator.state_of(path) == UploadState.ABORTED
        assert await coordinator.abort_all() == []

    @pytest.mark.asyncio
    async def test_cancel_during_abort_leaves_session_for_sweep(self, make_transport, make_file):
        """Test a cancel while the failure abort is in flight keeps the session registered."""
        path = make_file(CONTENT)
        transport = make_transport(fail_parts={1}, abort_gate=asyncio.Event())
        coordinator = UploadCoordinator(transport)

        task = asyncio.create_task(coordinator.upload(path, options(force_multipart=True)))
        while transport.count('abort_upload') == 0:
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(coordinator.registry) == 1
        assert transport.aborted == []

        transport.abort_gate.set()
        aborted = await coordinator.abort_all()

        expected = ("build-1", "upload-build-1", f"objects/build-1/{path.name}")
        assert [(s.build_id, s.upload_id, s.object_key) for s in aborted] == [expected]
        assert transport.aborted == [expected]
        assert len(coordinator.registry) == 0


class TestValidation:
    """Test suite for pre-flight checks."""

    @pytest.mark.asyncio
    async def test_invalid_options_make_no_calls(self, fake_transport, make_file):
        path = make_file(CONTENT)
        coordinator = UploadCoordinator(fake_transport)

        with pytest.raises(ConfigError, match="Parallel value must be between 1 and 32, got 0"):
            await coordinator.upload(path, options(concurrency=0))

        assert fake_transport.calls == []

    @pytest.mark.asyncio
    async def test_missing_file(self, fake_transport):
        coordinator = UploadCoordinator(fake_transport)

        with pytest.raises(FileNotFoundError):
            await coordinator.upload("/nonexistent/game.apk", options())

        assert fake_transport.calls == []


class TestVerifyParts:
    """Test suite for verify_parts."""

    def test_sorts(self):
        parts = [UploadedPart(2, "b"), UploadedPart(1, "a")]

        assert verify_parts(parts, 2) == [UploadedPart(1, "a"), UploadedPart(2, "b")]

    def test_missing(self):
        with pytest.raises(UploadError, match="missing parts \\[2\\]"):
            verify_parts([UploadedPart(1, "a")], 2)

    def test_duplicate(self):
        with pytest.raises(UploadError, match="duplicate parts \\[1\\]"):
            verify_parts([UploadedPart(1, "a"), UploadedPart(1, "b")], 1)
