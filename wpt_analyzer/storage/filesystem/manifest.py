"""Filesystem storage manifest."""

from wpt_analyzer.storage.filesystem.config import FileSystemStorageConfig
from wpt_analyzer.storage.filesystem.storage import FileSystemStorage
from wpt_analyzer.storage.manifest import StorageManifest

filesystem_manifest = StorageManifest(
    config_cls=FileSystemStorageConfig,
    storage_factory=FileSystemStorage.from_config,
)
