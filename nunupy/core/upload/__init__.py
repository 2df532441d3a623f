"""
Upload module for build artifacts.

Splits files into parts, drives the initiate -> transfer -> complete
protocol, and aborts sessions that fail or are cancelled.
"""
from .coordinator import (
    UploadCoordinator,
    UploadState,
    MAX_SINGLE_PART_SIZE,
    use_multipart,
    verify_parts,
)
from .models import (
    UploadOptions,
    UploadSession,
    PartDescriptor,
    UploadResult,
    FileOutcome,
)
from .multipart import BatchedPartUploader
from .planner import plan_parts, batch_part_numbers
from .platform import infer_platform
from .progress import ByteCounter
from .protocols import UploadTransport, ProgressSink, SessionObserver, FileReaderProtocol
from .registry import SessionRegistry
from .single import SinglePartUploader

__all__ = [
    # Main classes
    'UploadCoordinator',
    'BatchedPartUploader',
    'SinglePartUploader',
    'SessionRegistry',
    'ByteCounter',

    # Models
    'UploadOptions',
    'UploadSession',
    'PartDescriptor',
    'UploadResult',
    'FileOutcome',
    'UploadState',

    # Functions
    'plan_parts',
    'batch_part_numbers',
    'infer_platform',
    'use_multipart',
    'verify_parts',
    'MAX_SINGLE_PART_SIZE',

    # Protocols
    'UploadTransport',
    'ProgressSink',
    'SessionObserver',
    'FileReaderProtocol',
]
