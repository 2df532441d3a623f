"""Builds API module."""
from .client import BuildsAPIClient, parse_storage_error
from .config import APIConfig, ProxyConfig, SSLConfig, TimeoutConfig, redact_proxy_url
from .models import (
    BuildPlatform,
    DeletionPolicy,
    UploadRequest,
    SinglePartUploadResponse,
    MultipartUploadResponse,
    PartUploadUrl,
    PartUrlsResponse,
    UploadedPart,
)

__all__ = [
    # Client
    'BuildsAPIClient',
    'parse_storage_error',

    # Configuration
    'APIConfig',
    'ProxyConfig',
    'SSLConfig',
    'TimeoutConfig',
    'redact_proxy_url',

    # Models
    'BuildPlatform',
    'DeletionPolicy',
    'UploadRequest',
    'SinglePartUploadResponse',
    'MultipartUploadResponse',
    'PartUploadUrl',
    'PartUrlsResponse',
    'UploadedPart',
]
