"""
Single-part upload path.

The whole file goes up in one streamed PUT. Progress is pushed through the
same ByteCounter as multipart uploads so callers render both alike.
"""
from ..logging import get_logger
from .models import UploadSession
from .progress import ByteCounter
from .protocols import UploadTransport

logger = get_logger('nunupy.upload.single')


class SinglePartUploader:
    """Streams one file to its presigned upload URL."""

    def __init__(self, transport: UploadTransport):
        self._transport = transport

    async def upload(
        self,
        upload_url: str,
        session: UploadSession,
        data: bytes,
        counter: ByteCounter
    ) -> None:
        """
        Upload the file contents.

        Args:
            upload_url: Presigned URL returned with the session
            session: Single-part session
            data: Whole file contents
            counter: Progress counter for this file
        """
        logger.debug(f"Streaming {len(data)} bytes for build {session.build_id}")
        await self._transport.upload_with_progress(upload_url, data, counter.set)
        # Transports that do not report chunks still end at the full size.
        counter.set(len(data))
