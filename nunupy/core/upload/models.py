"""
Data models for upload module.

Uses dataclasses for immutable, type-safe data structures.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List, Tuple, Union

from ..api.models import BuildPlatform, DeletionPolicy, UploadRequest, UploadedPart
from ..exceptions import ConfigError
from ..metadata.models import BuildDetails
from .protocols import ProgressSink, SessionObserver

MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 32
DEFAULT_CONCURRENCY = 4

MIN_UPLOAD_TIMEOUT = 1
MAX_UPLOAD_TIMEOUT = 1440  # minutes

MAX_TAG_LENGTH = 50


@dataclass(frozen=True)
class UploadOptions:
    """
    Request-scoped options for uploading one file.

    Attributes:
        name: Build name
        platform: Target platform
        description: Optional build description
        upload_timeout: Server-side upload timeout in minutes (1-1440)
        auto_delete: Let the backend delete old builds when storage is full
        deletion_policy: Which builds auto-delete removes first
        force_multipart: Use multipart regardless of file size
        concurrency: Parts per batch and maximum simultaneous transfers
        progress: Optional progress sink
        on_session: Called once with (build_id, upload_id, object_key)
            right after the backend creates the upload
        details: Optional VCS / CI / uploader metadata
        tags: Optional build tags (1-50 characters each)
    """
    name: str
    platform: BuildPlatform
    description: Optional[str] = None
    upload_timeout: Optional[int] = None
    auto_delete: bool = False
    deletion_policy: Optional[DeletionPolicy] = None
    force_multipart: bool = False
    concurrency: int = DEFAULT_CONCURRENCY
    progress: Optional[ProgressSink] = field(default=None, compare=False)
    on_session: Optional[SessionObserver] = field(default=None, compare=False)
    details: Optional[BuildDetails] = None
    tags: Optional[Tuple[str, ...]] = None

    def __post_init__(self):
        if isinstance(self.platform, str) and not isinstance(self.platform, BuildPlatform):
            object.__setattr__(self, 'platform', BuildPlatform.parse(self.platform))
        if isinstance(self.deletion_policy, str) and not isinstance(self.deletion_policy, DeletionPolicy):
            object.__setattr__(self, 'deletion_policy', DeletionPolicy.parse(self.deletion_policy))
        if self.tags is not None and not isinstance(self.tags, tuple):
            object.__setattr__(self, 'tags', tuple(self.tags))

    def validate(self) -> None:
        """
        Check every option before any network call.

        Raises:
            ConfigError: If an option is out of range
        """
        if not self.name or not self.name.strip():
            raise ConfigError("Build name cannot be empty")
        if not MIN_CONCURRENCY <= self.concurrency <= MAX_CONCURRENCY:
            raise ConfigError(
                f"Parallel value must be between {MIN_CONCURRENCY} and "
                f"{MAX_CONCURRENCY}, got {self.concurrency}"
            )
        if self.upload_timeout is not None and not (
            MIN_UPLOAD_TIMEOUT <= self.upload_timeout <= MAX_UPLOAD_TIMEOUT
        ):
            raise ConfigError(
                f"Upload timeout must be between {MIN_UPLOAD_TIMEOUT} and "
                f"{MAX_UPLOAD_TIMEOUT} minutes, got {self.upload_timeout}"
            )
        for tag in self.tags or ():
            if not 1 <= len(tag) <= MAX_TAG_LENGTH:
                raise ConfigError(
                    f"Tags must be 1-{MAX_TAG_LENGTH} characters, got '{tag}'"
                )

    def to_request(self, file_name: str, file_size: int, multipart: bool) -> UploadRequest:
        return UploadRequest(
            name=self.name,
            file_name=file_name,
            file_size=file_size,
            platform=self.platform,
            multipart=multipart,
            description=self.description,
            auto_delete=self.auto_delete,
            deletion_policy=self.deletion_policy,
            upload_timeout=self.upload_timeout,
            details=self.details,
            tags=self.tags,
        )


@dataclass(frozen=True)
class UploadSession:
    """
    Identifiers scoping every call of one file's upload.

    upload_id, part_size and total_parts are only set for multipart uploads.
    """
    build_id: str
    object_key: str
    upload_id: Optional[str] = None
    part_size: Optional[int] = None
    total_parts: Optional[int] = None

    @property
    def is_multipart(self) -> bool:
        return self.upload_id is not None


@dataclass(frozen=True)
class PartDescriptor:
    """
    Byte range owned by one part.

    Attributes:
        part_number: 1-based part number
        start: First byte (inclusive)
        end: Last byte (exclusive)
    """
    part_number: int
    start: int
    end: int

    @property
    def size(self) -> int:
        """Returns part size."""
        return self.end - self.start


@dataclass(frozen=True)
class UploadResult:
    """
    Result of a successful upload.

    Attributes:
        build_id: Build created by the backend
        file_path: Uploaded file
        file_size: Size in bytes
        multipart: Whether the multipart flow was used
        parts: Parts submitted on completion (empty for single-part)
    """
    build_id: str
    file_path: Path
    file_size: int
    multipart: bool = False
    parts: List[UploadedPart] = field(default_factory=list)


@dataclass(frozen=True)
class FileOutcome:
    """Outcome of one file in a multi-file upload."""
    file_path: Union[str, Path]
    result: Optional[UploadResult] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def build_id(self) -> Optional[str]:
        return self.result.build_id if self.result else None
