"""Filesystem storage module."""

from wpt_analyzer.storage.filesystem.config import FileSystemStorageConfig
from wpt_analyzer.storage.filesystem.manifest import filesystem_manifest
from wpt_analyzer.storage.filesystem.storage import FileSystemStorage

__all__ = ["FileSystemStorage", "FileSystemStorageConfig", "filesystem_manifest"]
