"""Tests for upload models."""
import pytest

from nunupy.core.api.models import BuildPlatform, DeletionPolicy
from nunupy.core.exceptions import ConfigError
from nunupy.core.upload.models import (
    FileOutcome,
    PartDescriptor,
    UploadOptions,
    UploadResult,
    UploadSession,
)


class TestUploadOptions:
    """Test suite for UploadOptions."""

    def test_string_platform_coerced(self):
        options = UploadOptions(name="v1", platform="ios-native", deletion_policy="oldest")

        assert options.platform == BuildPlatform.IOS_NATIVE
        assert options.deletion_policy == DeletionPolicy.OLDEST

    def test_invalid_platform(self):
        with pytest.raises(ConfigError, match="Invalid platform"):
            UploadOptions(name="v1", platform="amiga")

    def test_tags_become_tuple(self):
        options = UploadOptions(name="v1", platform="android", tags=["qa"])

        assert options.tags == ("qa",)

    def test_validate_ok(self):
        UploadOptions(name="v1", platform="android", upload_timeout=1440, concurrency=32).validate()

    @pytest.mark.parametrize("kwargs, message", [
        ({'name': " "}, "name cannot be empty"),
        ({'concurrency': 33}, "Parallel value must be between 1 and 32, got 33"),
        ({'upload_timeout': 0}, "between 1 and 1440"),
        ({'tags': ("",)}, "Tags must be 1-50 characters"),
        ({'tags': ("x" * 51,)}, "Tags must be 1-50 characters"),
    ])
    def test_validate_rejects(self, kwargs, message):
        kwargs.setdefault('name', "v1")
        options = UploadOptions(platform="android", **kwargs)

        with pytest.raises(ConfigError, match=message):
            options.validate()

    def test_to_request(self):
        options = UploadOptions(name="v1", platform="android", description="QA", tags=("a",))

        request = options.to_request("game.apk", 10, multipart=True)

        assert request.file_name == "game.apk"
        assert request.multipart is True
        assert request.to_dict()['tags'] == ["a"]


class TestUploadSession:
    """Test suite for UploadSession."""

    def test_single_part(self):
        assert not UploadSession(build_id="b", object_key="k").is_multipart

    def test_multipart(self):
        session = UploadSession(build_id="b", object_key="k", upload_id="u", part_size=4, total_parts=2)

        assert session.is_multipart


class TestOutcomes:
    """Test suite for results."""

    def test_part_descriptor_size(self):
        assert PartDescriptor(part_number=2, start=4, end=7).size == 3

    def test_file_outcome_success(self):
        result = UploadResult(build_id="b", file_path="a.apk", file_size=1)
        outcome = FileOutcome(file_path="a.apk", result=result)

        assert outcome.ok
        assert outcome.build_id == "b"

    def test_file_outcome_failure(self):
        outcome = FileOutcome(file_path="a.apk", error=ConfigError("bad"))

        assert not outcome.ok
        assert outcome.build_id is None
