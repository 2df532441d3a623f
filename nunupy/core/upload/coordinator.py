"""
Upload coordinator.

Sequences one file's upload: size it, pick the single-part or multipart
flow, create the session, transfer the bytes and complete. A failed
multipart flow is aborted best-effort; a cancelled flow leaves its session
in the registry for abort_all() to sweep.
"""
import asyncio
import time
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..api.models import UploadedPart
from ..exceptions import UploadError
from ..logging import get_logger
from .models import UploadOptions, UploadResult, UploadSession
from .multipart import BatchedPartUploader
from .progress import ByteCounter
from .protocols import UploadTransport, FileReaderProtocol
from .registry import SessionRegistry
from .services import FileValidator, AsyncFileReader
from .single import SinglePartUploader

logger = get_logger('nunupy.upload.coordinator')

MAX_SINGLE_PART_SIZE = 3 * 1024 * 1024 * 1024  # 3 GiB


class UploadState(str, Enum):
    """Lifecycle of one file's upload."""
    IDLE = "idle"
    SIZING = "sizing"
    SINGLE_PART = "single_part"
    MULTIPART = "multipart"
    COMPLETING = "completing"
    DONE = "done"
    ABORTING = "aborting"
    ABORTED = "aborted"
    FAILED = "failed"


def use_multipart(file_size: int, force_multipart: bool = False) -> bool:
    """Files above 3 GiB, or any file when forced, go through multipart."""
    return force_multipart or file_size > MAX_SINGLE_PART_SIZE


def verify_parts(parts: List[UploadedPart], total_parts: int) -> List[UploadedPart]:
    """
    Check that every part 1..total_parts is present exactly once.

    Returns:
        The parts sorted by part number

    Raises:
        UploadError: If a part is missing or duplicated
    """
    ordered = sorted(parts)
    numbers = [p.part_number for p in ordered]
    if numbers != list(range(1, total_parts + 1)):
        missing = sorted(set(range(1, total_parts + 1)) - set(numbers))
        duplicates = sorted({n for n in numbers if numbers.count(n) > 1})
        raise UploadError(
            f"Cannot complete upload: missing parts {missing}, duplicate parts {duplicates}"
        )
    return ordered


class UploadCoordinator:
    """
    Coordinates the file upload process.

    Uses dependency injection for the transport and file reader, making it
    testable with an in-memory transport.

    Example:
        >>> coordinator = UploadCoordinator(api_client)
        >>> result = await coordinator.upload("game.apk", options)
        >>> print(result.build_id)
    """

    def __init__(
        self,
        transport: UploadTransport,
        registry: Optional[SessionRegistry] = None,
        file_reader: Optional[FileReaderProtocol] = None
    ):
        """
        Initialize upload coordinator.

        Args:
            transport: Remote operations (usually BuildsAPIClient)
            registry: Session registry shared with the cancellation path
            file_reader: File reader implementation
        """
        self._transport = transport
        self._registry = registry if registry is not None else SessionRegistry()
        self._file_reader = file_reader or AsyncFileReader()
        self._validator = FileValidator()
        self._states: Dict[str, UploadState] = {}

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    def state_of(self, file_path: Union[str, Path]) -> UploadState:
        return self._states.get(str(file_path), UploadState.IDLE)

    def _transition(self, file_path: Union[str, Path], state: UploadState) -> None:
        self._states[str(file_path)] = state
        logger.debug(f"{file_path}: {state.value}")

    async def upload(self, file_path: Union[str, Path], options: UploadOptions) -> UploadResult:
        """
        Execute the complete upload process for one file.

        Args:
            file_path: File to upload
            options: Upload options for this file

        Returns:
            Upload result; only returned after completion succeeded

        Raises:
            ConfigError: If options are invalid
            FileNotFoundError: If file doesn't exist
            ApiError: If a control-plane call fails
            UploadError: If a byte transfer fails
        """
        options.validate()

        self._transition(file_path, UploadState.SIZING)
        try:
            path, file_size = self._validator.validate(file_path)
        except Exception:
            self._transition(file_path, UploadState.FAILED)
            raise

        multipart = use_multipart(file_size, options.force_multipart)
        size_mb = file_size / (1024 * 1024)
        logger.info(
            f"Uploading {path.name} ({size_mb:.2f} MB)"
            + (" using multipart upload" if multipart else "")
        )

        start = time.time()
        if multipart:
            result = await self._upload_multipart(file_path, path, file_size, options)
        else:
            result = await self._upload_single(file_path, path, file_size, options)

        logger.info(f"Build ID: {result.build_id} ({time.time() - start:.2f}s)")
        return result

    async def _begin(self, key: Union[str, Path], session: UploadSession, options: UploadOptions) -> None:
        await self._registry.register(key, session)
        if options.on_session is not None:
            options.on_session(session.build_id, session.upload_id, session.object_key)

    async def _upload_single(
        self,
        key: Union[str, Path],
        path: Path,
        file_size: int,
        options: UploadOptions
    ) -> UploadResult:
        self._transition(key, UploadState.SINGLE_PART)
        try:
            response = await self._transport.request_upload_url(
                options.to_request(path.name, file_size, multipart=False)
            )
        except Exception:
            self._transition(key, UploadState.FAILED)
            raise
        session = UploadSession(build_id=response.build_id, object_key=response.object_key)

        try:
            await self._begin(key, session, options)
            data = await self._file_reader.read_file(path)
            counter = ByteCounter(file_size, options.progress)
            await SinglePartUploader(self._transport).upload(
                response.upload_url, session, data, counter
            )
            self._transition(key, UploadState.COMPLETING)
            await self._transport.complete_upload(session.build_id)
        except asyncio.CancelledError:
            self._transition(key, UploadState.ABORTING)
            raise
        except Exception:
            await self._registry.remove(key)
            self._transition(key, UploadState.FAILED)
            raise

        await self._registry.remove(key)
        counter.finish("Upload complete")
        self._transition(key, UploadState.DONE)
        return UploadResult(
            build_id=session.build_id,
            file_path=path,
            file_size=file_size,
            multipart=False
        )

    async def _upload_multipart(
        self,
        key: Union[str, Path],
        path: Path,
        file_size: int,
        options: UploadOptions
    ) -> UploadResult:
        self._transition(key, UploadState.MULTIPART)
        try:
            response = await self._transport.initiate_upload(
                options.to_request(path.name, file_size, multipart=True)
            )
        except Exception:
            self._transition(key, UploadState.FAILED)
            raise
        session = UploadSession(
            build_id=response.build_id,
            object_key=response.object_key,
            upload_id=response.upload_id,
            part_size=response.part_size,
            total_parts=response.total_parts
        )
        logger.info(
            f"Multipart upload initiated - {session.total_parts} parts of "
            f"{session.part_size / (1024 * 1024):.2f} MB each"
        )

        try:
            await self._begin(key, session, options)
            data = await self._file_reader.read_file(path)
            counter = ByteCounter(file_size, options.progress)
            uploader = BatchedPartUploader(self._transport, options.concurrency)
            parts = await uploader.upload_parts(session, data, counter)
            parts = verify_parts(parts, session.total_parts)

            self._transition(key, UploadState.COMPLETING)
            logger.info(f"Completing multipart upload with {len(parts)} parts")
            await self._transport.complete_multipart_upload(
                session.build_id, session.upload_id, session.object_key, parts
            )
        except asyncio.CancelledError:
            self._transition(key, UploadState.ABORTING)
            raise
        except Exception:
            self._transition(key, UploadState.ABORTING)
            # Deregister only once the abort ran; if it is cancelled the sweep retries it.
            await self.abort_session(session)
            await self._registry.remove(key)
            self._transition(key, UploadState.ABORTED)
            raise

        await self._registry.remove(key)
        counter.finish("All parts uploaded")
        self._transition(key, UploadState.DONE)
        return UploadResult(
            build_id=session.build_id,
            file_path=path,
            file_size=file_size,
            multipart=True,
            parts=parts
        )

    async def abort_session(self, session: UploadSession) -> bool:
        """
        Abort one session, best-effort.

        Returns:
            True if the backend acknowledged the abort
        """
        logger.info(f"Aborting upload for build {session.build_id}")
        try:
            await self._transport.abort_upload(
                session.build_id, session.upload_id, session.object_key
            )
        except Exception as e:
            logger.warning(f"Failed to abort upload for build {session.build_id}: {e}")
            return False
        return True

    async def abort_all(self) -> List[UploadSession]:
        """
        Abort every session still registered.

        Used by the cancellation path after in-flight flows were cancelled.

        Returns:
            The sessions an abort was issued for
        """
        entries = await self._registry.drain()
        if not entries:
            return []
        logger.warning(f"Aborting {len(entries)} in-flight upload(s)")
        await asyncio.gather(*[self.abort_session(session) for _, session in entries])
        for key, _ in entries:
            self._transition(key, UploadState.ABORTED)
        return [session for _, session in entries]
