"""Tests for platform inference."""
import pytest

from nunupy.core.api.models import BuildPlatform
from nunupy.core.exceptions import ConfigError, PlatformInferenceError
from nunupy.core.upload.platform import infer_platform


class TestInferPlatform:
    """Test suite for infer_platform."""

    @pytest.mark.parametrize("file_name, expected", [
        ("game.exe", BuildPlatform.WINDOWS),
        ("setup.msi", BuildPlatform.WINDOWS),
        ("game.dmg", BuildPlatform.MACOS),
        ("game.pkg", BuildPlatform.MACOS),
        ("game.ipa", BuildPlatform.IOS_NATIVE),
        ("game.apk", BuildPlatform.ANDROID),
        ("game.deb", BuildPlatform.LINUX),
        ("game.rpm", BuildPlatform.LINUX),
        ("Game.AppImage", BuildPlatform.LINUX),
    ])
    def test_known_extensions(self, file_name, expected):
        assert infer_platform(file_name) == expected

    def test_case_insensitive(self):
        assert infer_platform("dist/GAME.APK") == BuildPlatform.ANDROID

    def test_app_bundle_is_ambiguous(self):
        with pytest.raises(PlatformInferenceError, match="ios-simulator") as exc_info:
            infer_platform("Game.app")

        assert "Please specify --platform explicitly" in str(exc_info.value)

    @pytest.mark.parametrize("file_name", ["build.zip", "build.tar", "build.gz", "build.7z"])
    def test_archives_rejected(self, file_name):
        with pytest.raises(PlatformInferenceError, match="archive files"):
            infer_platform(file_name)

    def test_unknown_extension(self):
        with pytest.raises(PlatformInferenceError, match="'.bin'"):
            infer_platform("firmware.bin")

    def test_no_extension(self):
        with pytest.raises(PlatformInferenceError):
            infer_platform("README")

    def test_is_config_error(self):
        with pytest.raises(ConfigError):
            infer_platform("build.zip")
