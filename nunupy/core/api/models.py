"""
Wire models for the builds upload API.

Requests serialize to the JSON bodies the backend expects; responses are
parsed with from_dict(), which raises ApiParseError carrying the raw body
when a field is missing or has the wrong type.
"""
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, Optional, List, Tuple

from ..exceptions import ConfigError, ApiParseError
from ..metadata.models import BuildDetails


class BuildPlatform(str, Enum):
    """Target platform of a build, matching the backend schema."""

    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"
    ANDROID = "android"
    IOS_NATIVE = "ios-native"
    IOS_SIMULATOR = "ios-simulator"
    XBOX = "xbox"
    PLAYSTATION = "playstation"

    @classmethod
    def parse(cls, value: str) -> 'BuildPlatform':
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(p.value for p in cls)
            raise ConfigError(
                f"Invalid platform: '{value}'. Valid platforms are: {valid}"
            ) from None


class DeletionPolicy(str, Enum):
    """Which builds to delete first when auto-delete frees storage."""

    LEAST_RECENT = "least_recent"
    OLDEST = "oldest"

    @classmethod
    def parse(cls, value: str) -> 'DeletionPolicy':
        normalized = value.strip().lower().replace('-', '_')
        try:
            return cls(normalized)
        except ValueError:
            raise ConfigError(
                f"Invalid deletion policy: '{value}'. Valid policies are: least_recent, oldest"
            ) from None


@dataclass(frozen=True)
class UploadRequest:
    """Body of POST {base}/upload for both single-part and multipart uploads."""
    name: str
    file_name: str
    file_size: int
    platform: BuildPlatform
    multipart: bool = False
    description: Optional[str] = None
    auto_delete: Optional[bool] = None
    deletion_policy: Optional[DeletionPolicy] = None
    upload_timeout: Optional[int] = None
    details: Optional[BuildDetails] = None
    tags: Optional[Tuple[str, ...]] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            'name': self.name,
            'file_name': self.file_name,
            'file_size': self.file_size,
            'platform': BuildPlatform(self.platform).value,
            'multipart': self.multipart,
        }
        if self.description is not None:
            body['description'] = self.description
        if self.auto_delete is not None:
            body['auto_delete'] = self.auto_delete
        if self.deletion_policy is not None:
            body['deletion_policy'] = DeletionPolicy(self.deletion_policy).value
        if self.upload_timeout is not None:
            body['upload_timeout'] = self.upload_timeout
        if self.details is not None and not self.details.is_empty():
            body['details'] = self.details.to_dict()
        if self.tags:
            body['tags'] = list(self.tags)
        return body


def parse_json(body: str) -> Dict[str, Any]:
    """Decode a JSON object body or raise ApiParseError."""
    try:
        data = json.loads(body)
    except ValueError as e:
        raise ApiParseError(str(e), body) from e
    if not isinstance(data, dict):
        raise ApiParseError("expected a JSON object", body)
    return data


def _field(data: Dict[str, Any], name: str, kind: type, body: str) -> Any:
    if name not in data:
        raise ApiParseError(f"missing field `{name}`", body)
    value = data[name]
    # bool is a subclass of int; never accept it as a count
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ApiParseError(
            f"invalid type for `{name}`: expected {kind.__name__}", body
        )
    return value


@dataclass(frozen=True)
class SinglePartUploadResponse:
    """Response to a single-part upload request."""
    build_id: str
    upload_url: str
    object_key: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any], body: str = "") -> 'SinglePartUploadResponse':
        body = body or json.dumps(data)
        return cls(
            build_id=_field(data, 'build_id', str, body),
            upload_url=_field(data, 'upload_url', str, body),
            object_key=_field(data, 'object_key', str, body),
        )


@dataclass(frozen=True)
class MultipartUploadResponse:
    """Response to a multipart initiate request."""
    build_id: str
    upload_id: str
    object_key: str
    total_parts: int
    part_size: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any], body: str = "") -> 'MultipartUploadResponse':
        body = body or json.dumps(data)
        response = cls(
            build_id=_field(data, 'build_id', str, body),
            upload_id=_field(data, 'upload_id', str, body),
            object_key=_field(data, 'object_key', str, body),
            total_parts=_field(data, 'total_parts', int, body),
            part_size=_field(data, 'part_size', int, body),
        )
        if response.total_parts < 1 or response.part_size < 1:
            raise ApiParseError("total_parts and part_size must be positive", body)
        return response


@dataclass(frozen=True)
class PartUploadUrl:
    """Presigned URL for one part."""
    part_number: int
    url: str


@dataclass(frozen=True)
class PartUrlsResponse:
    """Response of GET {base}/upload/parts."""
    upload_urls: List[PartUploadUrl] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], body: str = "") -> 'PartUrlsResponse':
        body = body or json.dumps(data)
        entries = _field(data, 'upload_urls', list, body)
        urls = []
        for entry in entries:
            if not isinstance(entry, dict):
                raise ApiParseError("upload_urls entries must be objects", body)
            urls.append(PartUploadUrl(
                part_number=_field(entry, 'part_number', int, body),
                url=_field(entry, 'url', str, body),
            ))
        return cls(upload_urls=urls)

    def by_part_number(self) -> Dict[int, str]:
        return {u.part_number: u.url for u in self.upload_urls}


@dataclass(frozen=True, order=True)
class UploadedPart:
    """
    A part accepted by storage.

    Ordering compares part_number first, so sorted() yields the order
    storage requires when completing the upload.
    """
    part_number: int
    etag: str

    def to_dict(self) -> Dict[str, Any]:
        return {'part_number': self.part_number, 'etag': self.etag}
