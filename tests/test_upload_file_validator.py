"""
Tests for Build Validator

Tests build path validation, flavor mapping, payload creation and the
scoped working directory.
"""

import os
import zipfile
import pytest

from buildup.upload.file_validator import (
    BuildValidator,
    BINARY_CONTENT_TYPE,
    ZIP_CONTENT_TYPE,
    scoped_workspace
)
from buildup.upload.exceptions import BuildValidationError, PackagingError
from buildup.upload.models import BuildFlavor


class TestBuildValidation:
    """Test cases for build path validation"""

    def setup_method(self):
        """Setup for each test"""
        self.validator = BuildValidator()

    def test_empty_path_rejected(self, tmp_path):
        with pytest.raises(BuildValidationError, match="Empty build path"):
            self.validator.validate_build_path("", str(tmp_path))

    def test_unrecognized_extension_names_path(self, tmp_path):
        build = tmp_path / "MyApp.zip"
        with pytest.raises(BuildValidationError) as exc_info:
            self.validator.validate_build_path(str(build), str(tmp_path / "work"))
        assert "is not recognized" in str(exc_info.value)
        assert str(build) in str(exc_info.value)

    def test_apk_is_android_file(self, tmp_path):
        build = tmp_path / "app-release.apk"
        descriptor = self.validator.validate_build_path(str(build), str(tmp_path / "work"))

        assert descriptor.suffix == "apk"
        assert descriptor.flavor == BuildFlavor.ANDROID
        assert descriptor.payload_path == str(build)
        assert descriptor.content_type == BINARY_CONTENT_TYPE
        assert descriptor.is_directory is False

    def test_ipa_is_ios_file(self, tmp_path):
        build = tmp_path / "MyApp.ipa"
        descriptor = self.validator.validate_build_path(str(build), str(tmp_path / "work"))

        assert descriptor.flavor == BuildFlavor.IOS
        assert descriptor.payload_path == str(build)

    def test_app_is_ios_bundle_archived_in_working_dir(self, tmp_path):
        build = tmp_path / "MyApp.app"
        work = tmp_path / "work"
        descriptor = self.validator.validate_build_path(str(build), str(work))

        assert descriptor.flavor == BuildFlavor.IOS
        assert descriptor.is_directory is True
        assert descriptor.content_type == ZIP_CONTENT_TYPE
        assert descriptor.payload_path == os.path.join(str(work), "MyApp.app.zip")

    def test_relative_path_made_absolute(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        descriptor = self.validator.validate_build_path("build/out.apk", str(tmp_path / "work"))
        assert descriptor.absolute_path == os.path.join(str(tmp_path), "build", "out.apk")


class TestPayloadCreation:
    """Test cases for payload creation"""

    def setup_method(self):
        self.validator = BuildValidator()

    def test_apk_used_unchanged(self, tmp_path):
        build = tmp_path / "app.apk"
        build.write_bytes(b"PK\x03\x04android")
        work = tmp_path / "work"
        work.mkdir()

        descriptor = self.validator.validate_build_path(str(build), str(work))
        self.validator.create_payload(descriptor)

        assert descriptor.payload_path == str(build)
        assert os.listdir(work) == []
        assert build.read_bytes() == b"PK\x03\x04android"

    def test_missing_apk_fails(self, tmp_path):
        descriptor = self.validator.validate_build_path(str(tmp_path / "missing.apk"), str(tmp_path))
        with pytest.raises(PackagingError, match="Unable to read build"):
            self.validator.create_payload(descriptor)

    def test_apk_directory_fails(self, tmp_path):
        build = tmp_path / "weird.apk"
        build.mkdir()
        descriptor = self.validator.validate_build_path(str(build), str(tmp_path))
        with pytest.raises(PackagingError):
            self.validator.create_payload(descriptor)

    def test_app_file_instead_of_directory_fails(self, tmp_path):
        build = tmp_path / "MyApp.app"
        build.write_text("not a bundle")
        descriptor = self.validator.validate_build_path(str(build), str(tmp_path / "work"))
        with pytest.raises(PackagingError):
            self.validator.create_payload(descriptor)

    def test_app_bundle_zipped_under_its_own_name(self, tmp_path):
        build = tmp_path / "MyApp.app"
        (build / "Frameworks").mkdir(parents=True)
        (build / "Info.plist").write_text("<plist/>")
        (build / "Frameworks" / "Lib.dylib").write_bytes(b"\x00\x01")
        work = tmp_path / "work"
        work.mkdir()

        descriptor = self.validator.validate_build_path(str(build), str(work))
        self.validator.create_payload(descriptor)

        with zipfile.ZipFile(descriptor.payload_path) as archive:
            names = archive.namelist()
            top_level = {name.split("/")[0] for name in names}
            assert top_level == {"MyApp.app"}
            assert "MyApp.app/Info.plist" in names
            assert "MyApp.app/Frameworks/Lib.dylib" in names
            assert archive.read("MyApp.app/Frameworks/Lib.dylib") == b"\x00\x01"

    def test_pre_1980_timestamps_clamped(self, tmp_path):
        build = tmp_path / "Old.app"
        build.mkdir()
        info_plist = build / "Info.plist"
        info_plist.write_text("<plist/>")
        os.utime(info_plist, (1, 1))
        work = tmp_path / "work"
        work.mkdir()

        descriptor = self.validator.validate_build_path(str(build), str(work))
        self.validator.create_payload(descriptor)

        with zipfile.ZipFile(descriptor.payload_path) as archive:
            assert archive.getinfo("Old.app/Info.plist").date_time == (1980, 1, 1, 0, 0, 0)

    def test_archive_failure_is_packaging_error(self, tmp_path):
        build = tmp_path / "MyApp.app"
        build.mkdir()
        descriptor = self.validator.validate_build_path(str(build), str(tmp_path / "missing-work"))

        with pytest.raises(PackagingError, match="Unable to archive build"):
            self.validator.create_payload(descriptor)


class TestScopedWorkspace:

    def test_recreated_and_removed(self, tmp_path):
        work = tmp_path / "BuildupAgent-1"
        work.mkdir()
        (work / "stale.zip").write_text("old")

        with scoped_workspace(str(work)) as path:
            assert os.path.isdir(path)
            assert os.listdir(path) == []

        assert not work.exists()

    def test_removed_on_error(self, tmp_path):
        work = tmp_path / "BuildupAgent-2"

        with pytest.raises(RuntimeError):
            with scoped_workspace(str(work)):
                (work / "partial.zip").write_text("x")
                raise RuntimeError("boom")

        assert not work.exists()

    def test_uncreatable_directory_is_packaging_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")

        with pytest.raises(PackagingError, match="Unable to create working directory"):
            with scoped_workspace(str(blocker / "work")):
                pass
