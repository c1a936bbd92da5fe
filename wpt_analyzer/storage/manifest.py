"""Storage manifest definition for the plugin system."""

from collections.abc import Callable
from dataclasses import dataclass

from pydantic import BaseModel

from wpt_analyzer.storage.base import StorageManager


@dataclass(frozen=True, kw_only=True)
class StorageManifest[ConfigT: BaseModel]:
    """Manifest describing a storage backend plugin.

    The manifest contains references to the configuration class and the
    storage factory for lazy loading of backends based on their key.
    """

    config_cls: type[ConfigT]
    storage_factory: Callable[[ConfigT], StorageManager]
