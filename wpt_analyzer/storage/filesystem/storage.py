"""Filesystem storage implementation."""

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from yarl import URL

from wpt_analyzer.storage.base import StorageManager
from wpt_analyzer.storage.filesystem.config import FileSystemStorageConfig

log = logging.getLogger(__name__)

UNSAFE_CHARACTERS = re.compile(r"[^\w.-]")


def url_to_folder(url: str) -> Path:
    """Map a URL to a relative folder, one level per path segment.

    The query string is folded into the last segment so that URLs differing
    only by query do not share a folder.
    """
    parsed = URL(url)
    parts = [parsed.host or "unknown"]
    parts.extend(segment for segment in parsed.path.split("/") if segment)
    if parsed.query_string:
        parts.append(f"query-{parsed.query_string}")
    return Path(*(UNSAFE_CHARACTERS.sub("_", part) for part in parts))


@dataclass(frozen=True, kw_only=True)
class FileSystemStorage(StorageManager):
    """Writes artifacts below ``<base_dir>/pages/<url folder>/data/<category>``."""

    base_dir: Path

    @classmethod
    def from_config(cls, config: FileSystemStorageConfig) -> "FileSystemStorage":
        """Create storage rooted at the configured directory."""
        return cls(base_dir=config.base_dir)

    def path_for(self, filename: str, url: str, category: str) -> Path:
        """Return where an artifact for the URL is stored."""
        folder = self.base_dir / "pages" / url_to_folder(url)
        return folder / "data" / category / filename

    async def write_data_for_url(
        self,
        data: bytes,
        filename: str,
        url: str,
        category: str,
    ) -> Path:
        """Write the artifact to disk off the event loop."""
        path = self.path_for(filename, url, category)
        await asyncio.to_thread(_write, path, data)
        log.debug("Stored %s (%d bytes)", path, len(data))
        return path


def _write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
