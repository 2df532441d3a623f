"""
Git metadata collection.

CI environment variables (Jenkins, GitHub Actions, GitLab CI) take
priority; outside CI the local git binary is queried.
"""
import os
import subprocess
from typing import Callable, List, Mapping, Optional

from ..logging import get_logger
from .models import VcsMetadata, CommitInfo, PullRequestInfo

logger = get_logger('nunupy.metadata')

GitRunner = Callable[[List[str]], Optional[str]]


def run_git(args: List[str]) -> Optional[str]:
    """Run a git command; None on failure or empty output."""
    try:
        output = subprocess.run(
            ['git', *args],
            capture_output=True,
            text=True,
            check=False,
            timeout=10
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"git {' '.join(args)} failed: {e}")
        return None
    if output.returncode != 0:
        return None
    result = output.stdout.strip()
    return result or None


def detect_git_provider(url: str) -> Optional[str]:
    if 'github.com' in url:
        return 'github'
    if 'gitlab.com' in url:
        return 'gitlab'
    if 'bitbucket.org' in url:
        return 'bitbucket'
    if 'dev.azure.com' in url or 'visualstudio.com' in url:
        return 'azure-devops'
    return None


def _parse_int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


def _jenkins(env: Mapping[str, str]) -> Optional[VcsMetadata]:
    commit = env.get('GIT_COMMIT')
    if not commit:
        return None

    branch = env.get('GIT_BRANCH')
    if branch and branch.startswith('origin/'):
        branch = branch[len('origin/'):]
    url = env.get('GIT_URL')

    pr = None
    number = _parse_int(env.get('CHANGE_ID'))
    if number is not None:
        pr = PullRequestInfo(
            number=number,
            title=env.get('CHANGE_TITLE'),
            url=env.get('CHANGE_URL'),
            source_branch=env.get('CHANGE_BRANCH'),
            target_branch=env.get('CHANGE_TARGET'),
        )

    return VcsMetadata(
        provider=detect_git_provider(url) if url else None,
        repository_url=url,
        commit=CommitInfo(
            hash=commit,
            short_hash=commit[:7],
            author=env.get('GIT_AUTHOR_EMAIL') or env.get('GIT_AUTHOR_NAME'),
        ),
        branch=branch,
        pr=pr,
    )


def _github_actions(env: Mapping[str, str]) -> Optional[VcsMetadata]:
    if env.get('GITHUB_ACTIONS') != 'true':
        return None
    sha = env.get('GITHUB_SHA')
    ref = env.get('GITHUB_REF')
    if not sha or not ref:
        return None

    if ref.startswith('refs/heads/'):
        branch = ref[len('refs/heads/'):]
    else:
        branch = env.get('GITHUB_REF_NAME')
    tag = ref[len('refs/tags/'):] if ref.startswith('refs/tags/') else None

    repository = env.get('GITHUB_REPOSITORY')
    server_url = env.get('GITHUB_SERVER_URL', 'https://github.com')

    pr = None
    if env.get('GITHUB_EVENT_NAME') == 'pull_request' and ref.startswith('refs/pull/'):
        number = _parse_int(ref[len('refs/pull/'):].split('/')[0])
        if number is not None:
            pr = PullRequestInfo(
                number=number,
                url=f"{server_url}/{repository or ''}/pull/{number}",
                source_branch=env.get('GITHUB_HEAD_REF'),
                target_branch=env.get('GITHUB_BASE_REF'),
            )

    return VcsMetadata(
        provider='github',
        repository_url=f"https://github.com/{repository}" if repository else None,
        commit=CommitInfo(
            hash=sha,
            short_hash=sha[:7],
            author=env.get('GITHUB_ACTOR'),
        ),
        branch=branch,
        tag=tag,
        pr=pr,
    )


def _gitlab_ci(env: Mapping[str, str]) -> Optional[VcsMetadata]:
    if env.get('GITLAB_CI') != 'true':
        return None
    sha = env.get('CI_COMMIT_SHA')
    if not sha:
        return None

    pr = None
    number = _parse_int(env.get('CI_MERGE_REQUEST_IID'))
    if number is not None:
        project_url = env.get('CI_MERGE_REQUEST_PROJECT_URL')
        pr = PullRequestInfo(
            number=number,
            title=env.get('CI_MERGE_REQUEST_TITLE'),
            url=f"{project_url}/-/merge_requests/{number}" if project_url else None,
            source_branch=env.get('CI_MERGE_REQUEST_SOURCE_BRANCH_NAME'),
            target_branch=env.get('CI_MERGE_REQUEST_TARGET_BRANCH_NAME'),
        )

    return VcsMetadata(
        provider='gitlab',
        repository_url=env.get('CI_PROJECT_URL'),
        commit=CommitInfo(
            hash=sha,
            short_hash=env.get('CI_COMMIT_SHORT_SHA') or sha[:7],
            message=env.get('CI_COMMIT_MESSAGE'),
            author=env.get('CI_COMMIT_AUTHOR'),
            timestamp=env.get('CI_COMMIT_TIMESTAMP'),
        ),
        branch=env.get('CI_COMMIT_BRANCH'),
        tag=env.get('CI_COMMIT_TAG'),
        pr=pr,
    )


def _from_git(git: GitRunner) -> Optional[VcsMetadata]:
    if git(['rev-parse', '--git-dir']) is None:
        return None
    commit = git(['rev-parse', 'HEAD'])
    if commit is None:
        return None

    remote = git(['config', '--get', 'remote.origin.url'])
    return VcsMetadata(
        provider=detect_git_provider(remote) if remote else None,
        repository_url=remote,
        commit=CommitInfo(
            hash=commit,
            short_hash=git(['rev-parse', '--short=7', 'HEAD']) or commit[:7],
            message=git(['log', '-1', '--pretty=%s']),
            author=git(['log', '-1', '--pretty=%an <%ae>']),
            timestamp=git(['log', '-1', '--pretty=%cI']),
        ),
        branch=git(['rev-parse', '--abbrev-ref', 'HEAD']),
        tag=git(['describe', '--tags', '--exact-match']),
    )


def collect_git_metadata(
    environ: Optional[Mapping[str, str]] = None,
    git: GitRunner = run_git
) -> Optional[VcsMetadata]:
    """
    Collect VCS metadata for the current build.

    Args:
        environ: Environment to read (defaults to os.environ)
        git: Runner for git commands, used when no CI variables are set

    Returns:
        VcsMetadata, or None outside a git repository
    """
    env = os.environ if environ is None else environ
    for collector in (_jenkins, _github_actions, _gitlab_ci):
        metadata = collector(env)
        if metadata is not None:
            return metadata
    return _from_git(git)
