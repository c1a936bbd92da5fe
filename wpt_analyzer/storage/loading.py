"""Loading of storage backends from entry points."""

from collections.abc import Mapping
from importlib.metadata import EntryPoint, entry_points
from typing import Any

from wpt_analyzer.storage.manifest import StorageManifest

ENTRY_POINT_GROUP = "wpt_analyzer.storage"

# Shipped with the package, usable without the distribution being installed
BUILTIN_STORAGES: tuple[EntryPoint, ...] = (
    EntryPoint(
        name="filesystem",
        value="wpt_analyzer.storage.filesystem:filesystem_manifest",
        group=ENTRY_POINT_GROUP,
    ),
)


class StorageNotFoundError(Exception):
    """Raised when a storage backend is not found."""


def available_storages() -> Mapping[str, EntryPoint]:
    """Built-in backends, overridden by installed plugins of the same name."""
    storages = {entry.name: entry for entry in BUILTIN_STORAGES}
    storages.update(
        {entry.name: entry for entry in entry_points(group=ENTRY_POINT_GROUP)}
    )
    return storages


def load_storage_manifest(key: str) -> StorageManifest[Any]:
    """Load a storage manifest by key.

    Args:
        key: The backend key, a built-in one or as registered by a plugin
            (e.g., "filesystem")

    Returns:
        The storage manifest instance

    Raises:
        StorageNotFoundError: If no backend with the given key is found

    """
    storages = available_storages()

    if (entry := storages.get(key)) is None:
        raise StorageNotFoundError(
            f"Storage '{key}' not found. Available storages: {sorted(storages)}"
        )

    manifest: StorageManifest[Any] = entry.load()
    return manifest
