"""
Build Validator and Packager

Validates a build artifact path, determines its platform flavor, and turns
bundle directories into a zip payload inside a scoped working directory.
"""

import logging
import os
import shutil
import tempfile
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator

from .models import BuildDescriptor, BuildFlavor, BuildKind
from .exceptions import BuildValidationError, PackagingError

logger = logging.getLogger(__name__)

BINARY_CONTENT_TYPE = "application/octet-stream"
JSON_CONTENT_TYPE = "application/json"
ZIP_CONTENT_TYPE = "application/zip"

BUILD_KINDS: Dict[str, BuildKind] = {
    "apk": BuildKind(flavor=BuildFlavor.ANDROID, is_directory=False, content_type=BINARY_CONTENT_TYPE),
    "ipa": BuildKind(flavor=BuildFlavor.IOS, is_directory=False, content_type=BINARY_CONTENT_TYPE),
    "app": BuildKind(flavor=BuildFlavor.IOS, is_directory=True, content_type=ZIP_CONTENT_TYPE),
}


def determine_working_path() -> str:
    return os.path.join(tempfile.gettempdir(), f"BuildupAgent-{os.getpid()}")


@contextmanager
def scoped_workspace(working_path: str) -> Iterator[str]:
    """Fresh working directory, removed on every exit path."""
    shutil.rmtree(working_path, ignore_errors=True)
    try:
        try:
            os.makedirs(working_path, mode=0o755)
        except OSError as e:
            raise PackagingError(f"Unable to create working directory {working_path!r}, error: {e}")
        yield working_path
    finally:
        shutil.rmtree(working_path, ignore_errors=True)


class BuildValidator:
    """Validates build artifacts and prepares the upload payload"""

    def __init__(self, build_kinds: Dict[str, BuildKind] = None):
        self.build_kinds = build_kinds or BUILD_KINDS

    def validate_build_path(self, build_path: str, working_path: str) -> BuildDescriptor:
        if not build_path:
            raise BuildValidationError("Empty build path")

        absolute_path = os.path.abspath(build_path)
        suffix = Path(absolute_path).suffix.lstrip(".")

        kind = self.build_kinds.get(suffix)
        if kind is None:
            raise BuildValidationError(f"File extension of build at {absolute_path!r} is not recognized")

        if kind.is_directory:
            payload_path = os.path.join(working_path, os.path.basename(absolute_path) + ".zip")
        else:
            payload_path = absolute_path

        return BuildDescriptor(
            absolute_path=absolute_path,
            suffix=suffix,
            flavor=kind.flavor,
            payload_path=payload_path,
            content_type=kind.content_type,
            is_directory=kind.is_directory
        )

    def create_payload(self, descriptor: BuildDescriptor) -> None:
        if not descriptor.is_directory:
            if not os.path.isfile(descriptor.absolute_path):
                raise PackagingError(f"Unable to read build at {descriptor.absolute_path!r}")
            return

        if not os.path.isdir(descriptor.absolute_path):
            raise PackagingError(f"Unable to read build at {descriptor.absolute_path!r}")

        try:
            zip_folder(descriptor.payload_path, descriptor.absolute_path)
        except (OSError, ValueError) as e:
            raise PackagingError(f"Unable to archive build at {descriptor.absolute_path!r}, error: {e}")

        logger.debug(f"Archived {descriptor.absolute_path} to {descriptor.payload_path}")


def zip_folder(zip_path: str, folder_path: str) -> None:
    """Zip folder_path so that its own name is the sole top-level entry."""
    parent_path = os.path.dirname(folder_path)
    folder_name = os.path.basename(folder_path)

    # Reproducible builds may stamp files before 1980; those are clamped
    with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED, strict_timestamps=False) as archive:
        archive.write(folder_path, folder_name)

        for root, dirs, files in os.walk(folder_path):
            dirs.sort()
            files.sort()
            for name in dirs + files:
                full_path = os.path.join(root, name)
                arcname = os.path.relpath(full_path, parent_path)
                if os.path.islink(full_path):
                    info = zipfile.ZipInfo(arcname)
                    info.external_attr = 0o120777 << 16
                    archive.writestr(info, os.readlink(full_path))
                else:
                    archive.write(full_path, arcname)
