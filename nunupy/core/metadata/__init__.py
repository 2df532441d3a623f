"""
Build metadata attached to upload requests.

Collects VCS, CI and uploader information into the opaque `details`
object sent with every upload.
"""
import getpass
import os
from typing import Mapping, Optional

from .ci import collect_ci_metadata
from .models import (
    BuildDetails,
    CiMetadata,
    CommitInfo,
    PullRequestInfo,
    UploadInfo,
    VcsMetadata,
)
from .vcs import collect_git_metadata, detect_git_provider, run_git, GitRunner


def current_uploader(environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    env = os.environ if environ is None else environ
    for name in ('USER', 'USERNAME', 'LOGNAME'):
        if env.get(name):
            return env[name]
    if environ is not None:
        return None
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return None


def collect_build_details(
    method: str = "cli",
    cli_version: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    git: GitRunner = run_git
) -> BuildDetails:
    """Collect every available piece of build metadata."""
    return BuildDetails(
        vcs=collect_git_metadata(environ, git),
        ci=collect_ci_metadata(environ),
        upload=UploadInfo(
            method=method,
            cli_version=cli_version,
            uploader=current_uploader(environ),
        ),
    )


__all__ = [
    'BuildDetails',
    'CiMetadata',
    'CommitInfo',
    'PullRequestInfo',
    'UploadInfo',
    'VcsMetadata',
    'collect_build_details',
    'collect_ci_metadata',
    'collect_git_metadata',
    'current_uploader',
    'detect_git_provider',
]
