"""
Async builds API client.

One method per remote call. Control-plane calls (initiate, part URLs,
complete, abort) go to the backend with the x-api-key header; byte
transfers go straight to the presigned storage URLs.
"""
import asyncio
import re
import time
from typing import Optional, List, Dict, Any, Callable, AsyncIterator, Iterable, Tuple

import aiohttp

from ..config import Config
from ..exceptions import (
    ApiError,
    ApiConnectionError,
    UploadError,
    StorageConnectionError,
)
from ..logging import get_logger
from .config import APIConfig, proxy_from_env, redact_proxy_url
from .models import (
    UploadRequest,
    SinglePartUploadResponse,
    MultipartUploadResponse,
    PartUrlsResponse,
    UploadedPart,
    parse_json,
)

_CODE_RE = re.compile(r"<Code>(.*?)</Code>", re.DOTALL)
_MESSAGE_RE = re.compile(r"<Message>(.*?)</Message>", re.DOTALL)

STORAGE_DIAGNOSE_HINT = (
    "To diagnose, test the upload URL directly:\n"
    "echo 'test' > test.txt\n"
    "curl -X PUT -H 'Content-Type: application/octet-stream' "
    "--data-binary @test.txt -v '<upload-url>'"
)

REQUEST_FAILED_HINTS = (
    "This may indicate:\n"
    " - Network interruption during upload\n"
    " - Proxy interfering with the request\n"
    " - SSL/TLS issue"
)


def parse_storage_error(status: int, body: str) -> UploadError:
    """
    Build an UploadError from a failed storage response.

    Storage answers failures with an XML envelope carrying <Code> and
    <Message>; those are surfaced when present, otherwise the raw status
    and body are used.

    Example:
        >>> err = parse_storage_error(403, "<Error><Code>AccessDenied</Code></Error>")
        >>> err.code
        'AccessDenied'
    """
    code_match = _CODE_RE.search(body or "")
    if code_match:
        code = code_match.group(1).strip() or "Unknown"
        message_match = _MESSAGE_RE.search(body)
        message = message_match.group(1).strip() if message_match else body
        return UploadError(
            f"Storage error: {code} - {message}\n\n{STORAGE_DIAGNOSE_HINT}",
            status=status,
            body=body,
            code=code
        )
    return UploadError(f"Status {status}: {body}", status=status, body=body)


class BuildsAPIClient:
    """
    Asynchronous client for the builds upload API.

    Reuses one HTTP session for every call (critical for part uploads).

    Example:
        >>> async with BuildsAPIClient(config) as api:
        ...     session = await api.initiate_upload(request)
    """

    def __init__(
        self,
        config: Config,
        api_config: Optional[APIConfig] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """
        Initialize the client.

        Args:
            config: Credentials and endpoint
            api_config: Transport configuration (defaults if not provided)
            session: Optional shared HTTP session; not closed by this client
        """
        self._config = config
        self._api_config = api_config or APIConfig.default()
        self._session = session
        self._owns_session = session is None
        self._logger = get_logger('nunupy.api')

    @property
    def config(self) -> Config:
        return self._config

    async def __aenter__(self) -> 'BuildsAPIClient':
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session."""
        if self._session is None or self._session.closed:
            self._log_proxy()
            connector = aiohttp.TCPConnector(**self._api_config.get_connector_kwargs())
            self._session = aiohttp.ClientSession(
                connector=connector,
                **self._api_config.get_session_kwargs()
            )
            self._owns_session = True
        return self._session

    def _log_proxy(self) -> None:
        proxy = self._api_config.proxy_url or proxy_from_env()
        if proxy:
            self._logger.info(f"Using proxy: {redact_proxy_url(proxy)}")
        else:
            self._logger.debug("No proxy configured (direct connection)")

    async def close(self):
        """Close session if we own it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        if self._owns_session:
            self._session = None

    def _url(self, path: str) -> str:
        return f"{self._config.base_upload_url}{path}"

    def _auth_headers(self) -> Dict[str, str]:
        return {'x-api-key': self._config.token}

    async def _control_request(
        self,
        method: str,
        url: str,
        action: str,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Iterable[Tuple[str, str]]] = None
    ) -> str:
        """
        Send a control-plane request and return the response body.

        Raises:
            ApiConnectionError: If the backend cannot be reached
            ApiError: On any other transport failure or a non-2xx status
        """
        session = await self._ensure_session()
        try:
            async with session.request(
                method,
                url,
                json=json_body,
                params=list(params) if params is not None else None,
                headers=self._auth_headers(),
                proxy=self._api_config.proxy_url
            ) as response:
                body = await response.text()
                self._logger.debug(f"{action}: status {response.status}")
                if not 200 <= response.status < 300:
                    raise ApiError.from_response(response.status, body, action)
                return body
        except aiohttp.ClientConnectorError as e:
            raise ApiConnectionError(url, e) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ApiError(f"{action} request failed: {e!r}") from e

    async def request_upload_url(self, request: UploadRequest) -> SinglePartUploadResponse:
        """
        Request an upload URL for a single-part upload.

        Args:
            request: Upload request; its multipart flag is forced off

        Returns:
            build_id, upload_url and object_key for the new build
        """
        body = self._single_or_multipart_body(request, multipart=False)
        url = self._url("/upload")
        self._logger.debug(f"Requesting upload URL from: {url}")

        text = await self._control_request('POST', url, "Upload request", json_body=body)
        response = SinglePartUploadResponse.from_dict(parse_json(text), text)

        self._logger.debug(
            f"Received upload URL for build: {response.build_id} (object: {response.object_key})"
        )
        return response

    async def initiate_upload(self, request: UploadRequest) -> MultipartUploadResponse:
        """
        Initiate a multipart upload.

        Args:
            request: Upload request; its multipart flag is forced on

        Returns:
            build_id, upload_id, object_key, total_parts and part_size
        """
        body = self._single_or_multipart_body(request, multipart=True)
        url = self._url("/upload")
        self._logger.debug(f"Initiating multipart upload at: {url}")

        text = await self._control_request('POST', url, "Initiate upload", json_body=body)
        response = MultipartUploadResponse.from_dict(parse_json(text), text)

        self._logger.debug(
            f"Initiated multipart upload - build_id: {response.build_id}, "
            f"upload_id: {response.upload_id}, total_parts: {response.total_parts}"
        )
        return response

    @staticmethod
    def _single_or_multipart_body(request: UploadRequest, multipart: bool) -> Dict[str, Any]:
        body = request.to_dict()
        body['multipart'] = multipart
        return body

    async def request_part_urls(
        self,
        upload_id: str,
        object_key: str,
        part_numbers: List[int]
    ) -> PartUrlsResponse:
        """Request presigned URLs for a batch of part numbers in one call."""
        url = self._url("/upload/parts")
        self._logger.debug(f"Requesting upload URLs for {len(part_numbers)} parts at: {url}")

        params = [
            ('upload_id', upload_id),
            ('object_key', object_key),
            ('part_numbers', ",".join(str(n) for n in part_numbers)),
        ]
        text = await self._control_request('GET', url, "Part URLs request", params=params)
        response = PartUrlsResponse.from_dict(parse_json(text), text)

        self._logger.debug(f"Received {len(response.upload_urls)} upload URLs")
        return response

    async def upload_bytes(self, url: str, data: bytes) -> str:
        """
        PUT raw bytes to a presigned URL.

        Returns:
            The ETag header returned by storage

        Raises:
            StorageConnectionError: If storage cannot be reached
            UploadError: On a failed transfer, a non-2xx status or a missing ETag
        """
        session = await self._ensure_session()
        try:
            async with session.put(
                url,
                data=data,
                headers={'Content-Type': 'application/octet-stream'},
                proxy=self._api_config.proxy_url
            ) as response:
                if not 200 <= response.status < 300:
                    body = await response.text()
                    raise parse_storage_error(response.status, body)
                etag = response.headers.get('ETag')
                if not etag:
                    raise UploadError("Missing ETag in response", status=response.status)
                return etag
        except aiohttp.ClientConnectorError as e:
            raise StorageConnectionError(e) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise UploadError(f"Request failed. {REQUEST_FAILED_HINTS}\nError details: {e!r}") from e

    async def upload_with_progress(
        self,
        url: str,
        data: bytes,
        on_progress: Optional[Callable[[int], None]] = None
    ) -> Optional[str]:
        """
        Stream a whole file to a presigned URL, reporting cumulative bytes.

        Args:
            url: Presigned upload URL
            data: File contents
            on_progress: Called with the cumulative number of bytes handed
                to the connection after each chunk

        Returns:
            The ETag header if storage sent one
        """
        total = len(data)
        chunk_size = self._api_config.stream_chunk_size
        sent = 0

        async def body() -> AsyncIterator[bytes]:
            nonlocal sent
            view = memoryview(data)
            for offset in range(0, total, chunk_size):
                chunk = bytes(view[offset:offset + chunk_size])
                yield chunk
                sent += len(chunk)
                if on_progress:
                    on_progress(sent)

        self._logger.info(f"Uploading {total} bytes to storage")
        session = await self._ensure_session()
        start = time.time()
        try:
            async with session.put(
                url,
                data=body(),
                headers={
                    'Content-Type': 'application/octet-stream',
                    'Content-Length': str(total),
                },
                proxy=self._api_config.proxy_url
            ) as response:
                if not 200 <= response.status < 300:
                    text = await response.text()
                    raise parse_storage_error(response.status, text)
                elapsed = time.time() - start
                self._logger.info(f"Upload successful in {elapsed:.2f}s")
                return response.headers.get('ETag')
        except aiohttp.ClientConnectorError as e:
            raise StorageConnectionError(e) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise UploadError(
                f"Request failed after uploading {sent} bytes. {REQUEST_FAILED_HINTS}\n"
                f"Error details: {e!r}"
            ) from e

    async def complete_upload(self, build_id: str) -> None:
        """Notify the backend that a single-part upload is complete."""
        self._logger.debug(f"Completing upload for build: {build_id}")
        await self._control_request(
            'POST', self._url("/upload/complete"), "Complete",
            json_body={'build_id': build_id}
        )
        self._logger.info("Upload completed successfully")

    async def complete_multipart_upload(
        self,
        build_id: str,
        upload_id: str,
        object_key: str,
        parts: List[UploadedPart]
    ) -> None:
        """
        Complete a multipart upload.

        Parts are submitted in ascending part-number order.
        """
        self._logger.debug(f"Completing multipart upload for build: {build_id}")
        body = {
            'build_id': build_id,
            'upload_id': upload_id,
            'object_key': object_key,
            'parts': [p.to_dict() for p in sorted(parts)],
        }
        await self._control_request(
            'POST', self._url("/upload/complete"), "Complete multipart", json_body=body
        )
        self._logger.info("Multipart upload completed successfully")

    async def abort_upload(
        self,
        build_id: str,
        upload_id: Optional[str] = None,
        object_key: Optional[str] = None
    ) -> None:
        """Abort an upload. Callers treat failures as best-effort."""
        self._logger.debug(f"Aborting upload for build: {build_id}")
        params = [('build_id', build_id)]
        if upload_id is not None:
            params.append(('upload_id', upload_id))
        if object_key is not None:
            params.append(('object_key', object_key))
        await self._control_request(
            'DELETE', self._url("/upload"), "Abort upload", params=params
        )
        self._logger.info("Upload aborted successfully")
