"""
Platform inference from file extensions.

Ambiguous extensions (.app bundles, archives) are rejected instead of
guessed; the caller must pass --platform for those.
"""
from pathlib import Path
from typing import Dict, Union

from ..api.models import BuildPlatform
from ..exceptions import PlatformInferenceError

EXTENSION_PLATFORMS: Dict[str, BuildPlatform] = {
    'exe': BuildPlatform.WINDOWS,
    'msi': BuildPlatform.WINDOWS,
    'dmg': BuildPlatform.MACOS,
    'pkg': BuildPlatform.MACOS,
    'ipa': BuildPlatform.IOS_NATIVE,
    'apk': BuildPlatform.ANDROID,
    'deb': BuildPlatform.LINUX,
    'rpm': BuildPlatform.LINUX,
    'appimage': BuildPlatform.LINUX,
}

ARCHIVE_EXTENSIONS = frozenset({'zip', 'tar', 'gz', '7z', 'tgz', 'bz2'})


def infer_platform(file_path: Union[str, Path]) -> BuildPlatform:
    """
    Infer the build platform from a file's extension.

    Raises:
        PlatformInferenceError: For .app bundles, archives and unknown
            extensions
    """
    extension = Path(file_path).suffix.lstrip('.').lower()

    platform = EXTENSION_PLATFORMS.get(extension)
    if platform is not None:
        return platform

    if extension == 'app':
        raise PlatformInferenceError(
            "Cannot infer platform for .app files. "
            "Please specify --platform explicitly (macos or ios-simulator)",
            extension
        )
    if extension in ARCHIVE_EXTENSIONS:
        raise PlatformInferenceError(
            f"Cannot infer platform for archive files (.{extension}). "
            "Please specify --platform explicitly",
            extension
        )
    raise PlatformInferenceError(
        f"Cannot infer platform from file extension '.{extension}'. "
        "Please specify --platform explicitly",
        extension
    )
