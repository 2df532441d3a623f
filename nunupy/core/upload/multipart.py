"""
Batched concurrent part uploader.

Part numbers are processed in batches of `concurrency`: one URL request
per batch, then every part of the batch transferred concurrently. The
next batch starts only after all transfers of the current one resolved,
so at most `concurrency` transfers are ever in flight.
"""
import asyncio
import time
from typing import List, Dict

from ..api.models import UploadedPart
from ..exceptions import ApiError
from ..logging import get_logger
from .models import UploadSession, PartDescriptor
from .planner import plan_parts, batch_part_numbers
from .progress import ByteCounter
from .protocols import UploadTransport

logger = get_logger('nunupy.upload.multipart')


class BatchedPartUploader:
    """
    Uploads all parts of a multipart session.

    Responsibilities:
    - Request presigned URLs batch by batch
    - Transfer each batch's parts concurrently
    - Report transferred bytes to the shared counter
    """

    def __init__(self, transport: UploadTransport, concurrency: int):
        """
        Initialize part uploader.

        Args:
            transport: Remote operations
            concurrency: Batch size and maximum simultaneous transfers
        """
        if concurrency < 1:
            raise ValueError("Concurrency must be at least 1")
        self._transport = transport
        self._concurrency = concurrency

    async def upload_parts(
        self,
        session: UploadSession,
        data: bytes,
        counter: ByteCounter
    ) -> List[UploadedPart]:
        """
        Upload every part of the file.

        Args:
            session: Multipart session from the initiate call
            data: Whole file contents
            counter: Progress counter for this file

        Returns:
            One UploadedPart per part number, sorted ascending

        Raises:
            ApiError: If a URL request fails or returns the wrong parts, or the
                session's part count does not fit its part size
            UploadError: If any part transfer fails; remaining batches are
                abandoned
        """
        if not session.is_multipart or not session.part_size or not session.total_parts:
            raise ValueError("Session is not a multipart session")

        try:
            parts = plan_parts(len(data), session.part_size, session.total_parts)
        except ValueError as e:
            raise ApiError(f"Inconsistent multipart session: {e}") from e
        descriptors: Dict[int, PartDescriptor] = {p.part_number: p for p in parts}
        uploaded: List[UploadedPart] = []

        batches = batch_part_numbers(session.total_parts, self._concurrency)
        logger.info(
            f"Uploading {session.total_parts} parts in {len(batches)} batches "
            f"(max {self._concurrency} parallel)"
        )

        for batch in batches:
            logger.debug(
                f"Requesting URLs for parts {batch[0]}-{batch[-1]} of {session.total_parts}"
            )
            urls = await self._transport.request_part_urls(
                session.upload_id, session.object_key, batch
            )
            url_map = urls.by_part_number()
            self._check_urls(batch, url_map)

            # Siblings of a failed part run to completion; their results are discarded.
            results = await asyncio.gather(
                *[
                    self._upload_part(url_map[n], descriptors[n], data, counter)
                    for n in batch
                ],
                return_exceptions=True
            )
            for part_number, result in zip(batch, results):
                if isinstance(result, BaseException):
                    logger.error(f"Part {part_number} failed: {result}")
                    raise result
            uploaded.extend(results)

        uploaded.sort()
        return uploaded

    @staticmethod
    def _check_urls(batch: List[int], url_map: Dict[int, str]) -> None:
        missing = sorted(set(batch) - set(url_map))
        unexpected = sorted(set(url_map) - set(batch))
        if missing or unexpected:
            raise ApiError(
                f"Part URLs response does not match request: "
                f"missing {missing}, unexpected {unexpected}"
            )

    async def _upload_part(
        self,
        url: str,
        part: PartDescriptor,
        data: bytes,
        counter: ByteCounter
    ) -> UploadedPart:
        """Upload a single part (used as gather task)."""
        chunk = data[part.start:part.end]
        start_time = time.time()
        logger.debug(f"Uploading part {part.part_number} ({len(chunk)} bytes)")

        etag = await self._transport.upload_bytes(url, chunk)

        counter.add(len(chunk))
        elapsed = time.time() - start_time
        speed_kbps = (len(chunk) / 1024 / elapsed) if elapsed > 0 else 0
        logger.debug(
            f"Part {part.part_number} uploaded in {elapsed:.2f}s ({speed_kbps:.1f} KB/s)"
        )
        return UploadedPart(part_number=part.part_number, etag=etag)
