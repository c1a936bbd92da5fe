"""Abstract base class for artifact storage backends."""

from abc import ABC, abstractmethod
from pathlib import Path


class StorageManager(ABC):
    """Persists binary artifacts that belong to a tested URL.

    Implementations must accept concurrent writes to distinct filenames.
    """

    @abstractmethod
    async def write_data_for_url(
        self,
        data: bytes,
        filename: str,
        url: str,
        category: str,
    ) -> Path:
        """Store an artifact.

        Args:
            data: Raw artifact payload
            filename: Name of the artifact, unique per URL and category
            url: The tested URL the artifact belongs to
            category: Artifact group (e.g., "screenshots", "waterfall")

        Returns:
            Location of the stored artifact

        """
