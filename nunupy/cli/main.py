"""Nunu CLI - upload build artifacts."""
import asyncio
import glob
import logging
import signal
from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)
from rich.table import Table

from .. import __version__, setup_logging
from ..client import NunuClient, generate_build_name
from ..core.api.models import BuildPlatform, DeletionPolicy
from ..core.config import DEFAULT_API_URL, resolve_config
from ..core.exceptions import ConfigError, NunuException, UploadCancelledError
from ..core.logging import get_logger
from ..core.metadata import collect_build_details
from ..core.upload import FileOutcome, UploadOptions, infer_platform
from ..core.upload.models import DEFAULT_CONCURRENCY, MAX_CONCURRENCY, MIN_CONCURRENCY

app = typer.Typer(
    name="nunu",
    help="Upload build artifacts to Nunu.ai",
    add_completion=False
)
console = Console()
err_console = Console(stderr=True)
logger = get_logger('nunupy.cli')

EXIT_CANCELLED = 130


def run_async(coro):
    """Run async function."""
    return asyncio.run(coro)


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    setup_logging(level)
    # aiohttp is noisy at debug level
    logging.getLogger('aiohttp').setLevel(logging.WARNING)


def expand_files(patterns: List[str]) -> List[str]:
    """
    Expand glob patterns, keeping literal paths as given.

    Raises:
        ConfigError: If nothing is left to upload or a pattern matches nothing
    """
    files: List[str] = []
    for pattern in patterns:
        if glob.has_magic(pattern):
            matches = sorted(glob.glob(pattern, recursive=True))
            if not matches:
                raise ConfigError(f"No files match pattern: {pattern}")
            files.extend(matches)
        else:
            files.append(pattern)

    seen = set()
    unique = [f for f in files if not (f in seen or seen.add(f))]
    if not unique:
        raise ConfigError("No files specified for upload")
    return unique


class RichProgressSink:
    """Adapts one rich Progress task to the ProgressSink protocol."""

    def __init__(self, progress: Progress, description: str):
        self._progress = progress
        self._task = progress.add_task(description, total=None)

    def set_total(self, total: int) -> None:
        self._progress.update(self._task, total=total)

    def update(self, completed: int) -> None:
        self._progress.update(self._task, completed=completed)

    def finish(self, message: str) -> None:
        self._progress.update(self._task, description=message)


def print_summary(outcomes: List[FileOutcome]) -> int:
    """Print results and return the number of failed files."""
    succeeded = [o for o in outcomes if o.ok]
    failed = [o for o in outcomes if not o.ok]

    if succeeded:
        table = Table(title=f"Successfully uploaded {len(succeeded)} file(s)")
        table.add_column("File")
        table.add_column("Build ID", style="green")
        for outcome in succeeded:
            table.add_row(str(outcome.file_path), outcome.build_id)
        console.print(table)

    if failed:
        err_console.print(f"[red]Failed to upload {len(failed)} file(s):[/red]")
        for outcome in failed:
            err_console.print(f"  {outcome.file_path}: {outcome.error}")

    return len(failed)


@app.callback()
def main_callback(
    version: bool = typer.Option(False, "--version", help="Show version and exit", is_eager=True),
):
    """Upload build artifacts to Nunu.ai."""
    if version:
        console.print(f"nunu {__version__}")
        raise typer.Exit()


@app.command()
def upload(
    files: List[str] = typer.Argument(..., help="Files or glob patterns to upload"),
    token: Optional[str] = typer.Option(None, "--token", "-t", envvar="NUNU_API_TOKEN", help="API token"),
    project_id: Optional[str] = typer.Option(None, "--project-id", "-p", envvar="NUNU_PROJECT_ID", help="Project ID"),
    api_url: Optional[str] = typer.Option(None, "--api-url", envvar="NUNU_API_URL", help=f"API base URL (default: {DEFAULT_API_URL})"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file (JSON)"),
    name: str = typer.Option(..., "--name", "-n", help="Build name (template for multiple files)"),
    platform: Optional[str] = typer.Option(None, "--platform", help="Target platform (inferred from extension if omitted)"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Build description"),
    upload_timeout: Optional[int] = typer.Option(None, "--upload-timeout", min=1, max=1440, help="Upload timeout in minutes (1-1440)"),
    auto_delete: bool = typer.Option(False, "--auto-delete", help="Delete old builds if storage limits are exceeded"),
    deletion_policy: str = typer.Option("least_recent", "--deletion-policy", help="least_recent or oldest (with --auto-delete)"),
    force_multipart: bool = typer.Option(False, "--force-multipart", help="Force multipart upload"),
    parallel: int = typer.Option(DEFAULT_CONCURRENCY, "--parallel", help=f"Parallel uploads/parts ({MIN_CONCURRENCY}-{MAX_CONCURRENCY})"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", help="Build tag (repeatable)"),
    no_metadata: bool = typer.Option(False, "--no-metadata", help="Do not attach VCS/CI metadata"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Upload one or more build artifacts."""
    configure_logging(verbose)

    try:
        if not MIN_CONCURRENCY <= parallel <= MAX_CONCURRENCY:
            raise ConfigError(
                f"Parallel value must be between {MIN_CONCURRENCY} and {MAX_CONCURRENCY}, got {parallel}"
            )
        config = resolve_config(token, project_id, api_url, config_path)
        paths = expand_files(files)
        explicit_platform = BuildPlatform.parse(platform) if platform else None
        policy = DeletionPolicy.parse(deletion_policy) if auto_delete else None
    except ConfigError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(2)

    details = None if no_metadata else collect_build_details("cli", __version__)
    if details is not None and details.is_empty():
        details = None
    logger.info(f"Using API URL: {config.api_url}")
    logger.info(f"Parallel uploads/parts: {parallel}")

    async def do_upload() -> int:
        cancel_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, cancel_event.set)
            except (NotImplementedError, RuntimeError):
                # Not supported on Windows event loops
                pass

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            console=console
        ) as progress:

            def options_for(file_path) -> UploadOptions:
                file_platform = explicit_platform or infer_platform(file_path)
                build_name = generate_build_name(name, file_path, len(paths))
                logger.info(f"Uploading {file_path} as {build_name} (platform: {file_platform.value})")
                return UploadOptions(
                    name=build_name,
                    platform=file_platform,
                    description=description,
                    upload_timeout=upload_timeout,
                    auto_delete=auto_delete,
                    deletion_policy=policy,
                    force_multipart=force_multipart,
                    concurrency=parallel,
                    progress=RichProgressSink(progress, f"Uploading {Path(file_path).name}"),
                    on_session=lambda build_id, upload_id, object_key: logger.debug(
                        f"Upload started: build {build_id}, object {object_key}"
                    ),
                    details=details,
                    tags=tuple(tags) if tags else None,
                )

            async with NunuClient(config) as nunu:
                try:
                    outcomes = await nunu.upload_many(
                        paths, options_for, concurrency=parallel, cancel_event=cancel_event
                    )
                except UploadCancelledError as e:
                    err_console.print(f"[yellow]{e}[/yellow]")
                    return EXIT_CANCELLED

        return 1 if print_summary(outcomes) else 0

    try:
        code = run_async(do_upload())
    except NunuException as e:
        err_console.print(f"[red]Upload failed: {e}[/red]")
        raise typer.Exit(1)
    if code:
        raise typer.Exit(code)


def main():
    """Console script entry point."""
    load_dotenv()
    app()


if __name__ == "__main__":
    main()
