"""
NunuClient - High-level async client for uploading builds.

Example:
    >>> async with NunuClient(Config(token, project_id)) as nunu:
    ...     result = await nunu.upload("game.apk", UploadOptions(name="v1.2", platform="android"))
    ...     print(result.build_id)
"""
import asyncio
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from .core.api import APIConfig, BuildsAPIClient
from .core.config import Config
from .core.exceptions import UploadCancelledError
from .core.logging import get_logger
from .core.upload import (
    FileOutcome,
    SessionRegistry,
    UploadCoordinator,
    UploadOptions,
    UploadResult,
    UploadSession,
    UploadTransport,
)
from .core.upload.models import DEFAULT_CONCURRENCY

logger = get_logger('nunupy.client')

PathLike = Union[str, Path]


def generate_build_name(template: str, file_path: PathLike, file_count: int) -> str:
    """
    Build name for one of several uploaded files.

    Example:
        >>> generate_build_name("Nightly", "out/game.apk", 2)
        'Nightly - game.apk'
    """
    if file_count == 1:
        return template
    filename = Path(file_path).name or str(file_path)
    return f"{template} - {filename}"


class NunuClient:
    """
    Uploads one or many build artifacts.

    Owns the API client, the session registry and the coordinator. Every
    file gets its own flow; flows share nothing but the registry used to
    abort them on cancellation.
    """

    def __init__(
        self,
        config: Config,
        api_config: Optional[APIConfig] = None,
        transport: Optional[UploadTransport] = None
    ):
        """
        Initialize client.

        Args:
            config: Credentials and endpoint
            api_config: Transport configuration for the default API client
            transport: Optional transport replacing BuildsAPIClient
        """
        self._config = config
        self._api: Optional[BuildsAPIClient] = None
        if transport is None:
            self._api = BuildsAPIClient(config, api_config)
            transport = self._api
        self._registry = SessionRegistry()
        self._coordinator = UploadCoordinator(transport, registry=self._registry)

    @property
    def config(self) -> Config:
        return self._config

    @property
    def coordinator(self) -> UploadCoordinator:
        return self._coordinator

    async def __aenter__(self) -> 'NunuClient':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Release the HTTP session."""
        if self._api is not None:
            await self._api.close()

    async def upload(self, file_path: PathLike, options: UploadOptions) -> UploadResult:
        """
        Upload a single file.

        Returns:
            UploadResult with the build id
        """
        return await self._coordinator.upload(file_path, options)

    async def upload_many(
        self,
        files: Sequence[PathLike],
        options_for: Callable[[PathLike], UploadOptions],
        concurrency: int = DEFAULT_CONCURRENCY,
        cancel_event: Optional[asyncio.Event] = None
    ) -> List[FileOutcome]:
        """
        Upload several files, at most `concurrency` at a time.

        Each file's outcome is collected independently: one file failing
        does not stop the others.

        Args:
            files: Files to upload
            options_for: Builds the options for one file; exceptions it
                raises become that file's error
            concurrency: Maximum simultaneous file flows
            cancel_event: When set, in-flight flows are cancelled and every
                registered session is aborted

        Returns:
            One FileOutcome per file, in input order

        Raises:
            UploadCancelledError: If cancel_event was set before all flows finished
        """
        semaphore = asyncio.Semaphore(max(1, concurrency))

        async def run_one(file_path: PathLike) -> FileOutcome:
            async with semaphore:
                try:
                    options = options_for(file_path)
                    result = await self._coordinator.upload(file_path, options)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error(f"{file_path}: {e}")
                    return FileOutcome(file_path=file_path, error=e)
                return FileOutcome(file_path=file_path, result=result)

        tasks = [asyncio.create_task(run_one(f)) for f in files]
        if not tasks:
            return []
        gathered = asyncio.gather(*tasks)

        if cancel_event is None:
            return list(await gathered)

        cancel_wait = asyncio.create_task(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {gathered, cancel_wait}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            cancel_wait.cancel()

        if gathered in done:
            return list(gathered.result())

        aborted = await self._cancel(tasks, gathered)
        raise UploadCancelledError(
            f"Upload cancelled; aborted {len(aborted)} in-flight upload(s)",
            aborted=aborted
        )

    async def _cancel(self, tasks: List[asyncio.Task], gathered: asyncio.Future) -> List[UploadSession]:
        logger.warning("Cancellation requested, stopping uploads")
        gathered.cancel()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        return await self._coordinator.abort_all()

    async def abort_all(self) -> List[UploadSession]:
        """Abort every upload that has a session but has not completed."""
        return await self._coordinator.abort_all()
