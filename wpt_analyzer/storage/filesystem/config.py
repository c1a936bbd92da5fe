"""Configuration for the filesystem storage."""

from pathlib import Path

from pydantic import BaseModel


class FileSystemStorageConfig(BaseModel):
    """Configuration for the filesystem storage."""

    base_dir: Path = Path("wpt-results")
