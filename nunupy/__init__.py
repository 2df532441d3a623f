"""
NunuPy - Async uploader for Nunu.ai build artifacts.

Usage:
    >>> from nunupy import NunuClient, Config, UploadOptions
    >>>
    >>> async with NunuClient(Config("token", "project")) as nunu:
    ...     result = await nunu.upload("game.apk", UploadOptions(name="v1.2", platform="android"))
    ...     print(result.build_id)
"""
import logging

__version__ = '1.0.0'

from .client import NunuClient, generate_build_name
from .core.config import Config, FileConfig, resolve_config

# Configuration
from .core.api import (
    APIConfig,
    ProxyConfig,
    SSLConfig,
    TimeoutConfig,
    BuildsAPIClient,
    BuildPlatform,
    DeletionPolicy,
)

from .core.upload import (
    UploadOptions,
    UploadResult,
    UploadSession,
    FileOutcome,
    infer_platform,
)

from .core.exceptions import (
    NunuException,
    ConfigError,
    PlatformInferenceError,
    ApiError,
    ApiParseError,
    ApiConnectionError,
    UploadError,
    StorageConnectionError,
    UploadCancelledError,
)


def setup_logging(level=logging.INFO):
    """
    Configure logging for nunupy modules.

    Args:
        level: Logging level (default: logging.INFO)
    """
    loggers = [
        'nunupy',
        'nunupy.api',
        'nunupy.cli',
        'nunupy.client',
        'nunupy.config',
        'nunupy.metadata',
        'nunupy.upload.coordinator',
        'nunupy.upload.file',
        'nunupy.upload.multipart',
        'nunupy.upload.single',
    ]

    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.propagate = True


__all__ = [
    'NunuClient',
    'generate_build_name',
    'Config',
    'FileConfig',
    'resolve_config',
    'APIConfig',
    'ProxyConfig',
    'SSLConfig',
    'TimeoutConfig',
    'BuildsAPIClient',
    'BuildPlatform',
    'DeletionPolicy',
    'UploadOptions',
    'UploadResult',
    'UploadSession',
    'FileOutcome',
    'infer_platform',
    'NunuException',
    'ConfigError',
    'PlatformInferenceError',
    'ApiError',
    'ApiParseError',
    'ApiConnectionError',
    'UploadError',
    'StorageConnectionError',
    'UploadCancelledError',
    'setup_logging',
]
