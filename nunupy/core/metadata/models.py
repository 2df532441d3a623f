"""
Data models for build metadata.

Optional fields are omitted from the serialized form rather than sent as null.
"""
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, Optional


def compact(data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None, recursing into nested dicts."""
    result = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, dict):
            value = compact(value)
        result[key] = value
    return result


@dataclass(frozen=True)
class CommitInfo:
    """A single commit."""
    hash: str
    short_hash: str
    message: Optional[str] = None
    author: Optional[str] = None
    timestamp: Optional[str] = None


@dataclass(frozen=True)
class PullRequestInfo:
    """Pull / merge request the build belongs to."""
    number: int
    title: Optional[str] = None
    url: Optional[str] = None
    source_branch: Optional[str] = None
    target_branch: Optional[str] = None


@dataclass(frozen=True)
class VcsMetadata:
    """
    Version control information for a build.

    Attributes:
        vcs_type: Always 'git' for now (serialized as 'type')
        provider: github, gitlab, bitbucket or azure-devops when detectable
        repository_url: Remote URL
        commit: Commit the build was produced from
        branch: Branch name
        tag: Tag pointing at the commit
        pr: Pull request information
    """
    commit: CommitInfo
    vcs_type: str = "git"
    provider: Optional[str] = None
    repository_url: Optional[str] = None
    branch: Optional[str] = None
    tag: Optional[str] = None
    pr: Optional[PullRequestInfo] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['type'] = data.pop('vcs_type')
        return compact(data)


@dataclass(frozen=True)
class CiMetadata:
    """CI/CD system information for a build."""
    system: str
    build_number: Optional[str] = None
    job_name: Optional[str] = None
    run_id: Optional[str] = None
    run_url: Optional[str] = None
    triggered_by: Optional[str] = None
    agent: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return compact(asdict(self))


@dataclass(frozen=True)
class UploadInfo:
    """How the build was uploaded."""
    method: str
    cli_version: Optional[str] = None
    uploader: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return compact(asdict(self))


@dataclass(frozen=True)
class BuildDetails:
    """
    Opaque details object attached to an upload request.

    Example:
        >>> details = BuildDetails(upload=UploadInfo(method="cli"))
        >>> details.to_dict()
        {'upload': {'method': 'cli'}}
    """
    vcs: Optional[VcsMetadata] = None
    ci: Optional[CiMetadata] = None
    upload: Optional[UploadInfo] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.vcs is not None:
            result['vcs'] = self.vcs.to_dict()
        if self.ci is not None:
            result['ci'] = self.ci.to_dict()
        if self.upload is not None:
            result['upload'] = self.upload.to_dict()
        result.update(self.extra)
        return result

    def is_empty(self) -> bool:
        return not self.to_dict()
