"""Configuration for WebPageTest runs."""

import copy
from collections.abc import Sequence
from typing import Any, Literal, Self

from pydantic import Field, SecretStr, model_validator
from yarl import URL

from wpt_analyzer.models.base import Model

DEFAULT_SERVER = "https://www.webpagetest.org"
URL_PLACEHOLDER = "{{{URL}}}"

type View = Literal["firstView", "repeatView"]


def is_public_host(address: str) -> bool:
    """Check whether an address points at the public WebPageTest server."""
    if "://" not in address:
        address = f"http://{address}"
    return URL(address).host == URL(DEFAULT_SERVER).host


class WebPageTestConfig(Model):
    """Immutable configuration shared by every URL of a run.

    Test parameters are never handed to the client directly: each submission
    gets its own copy from ``test_options`` so nothing can leak between
    concurrent tests.
    """

    host: str = DEFAULT_SERVER
    key: SecretStr | None = None
    location: str = "Dulles:Chrome"
    connectivity: str | None = "Cable"
    runs: int = Field(default=3, ge=1)
    poll_results: float = Field(default=10, gt=0, description="Seconds between polls")
    timeout: float = Field(default=600, gt=0, description="Seconds to wait for a test")
    include_repeat_view: bool = False
    private: bool = True
    aft_rendering_time: bool = True
    video: bool = True
    timeline: bool = False
    script: str | None = None
    label: str | None = None
    domains_dashboard: bool = False
    # Hardening for artifact downloads, no equivalent on the service side
    artifact_timeout: float = Field(default=120, gt=0)
    max_concurrent_fetches: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _require_key_for_public_host(self) -> Self:
        if self.key is None and is_public_host(self.host):
            raise ValueError(
                "key needs to be specified when using the public WebPageTest server"
            )
        return self

    @property
    def views(self) -> Sequence[View]:
        """Views to collect artifacts for, first view always included."""
        if self.include_repeat_view:
            return ("firstView", "repeatView")
        return ("firstView",)

    @property
    def uses_script(self) -> bool:
        """Whether URLs are submitted through the script template."""
        return bool(self.script)

    def url_or_script(self, url: str) -> str:
        """Return the script with every placeholder replaced, or the URL itself."""
        if self.script:
            return self.script.replace(URL_PLACEHOLDER, url)
        return url

    def test_options(self) -> dict[str, Any]:
        """Build a fresh, independent options mapping for one submission."""
        options: dict[str, Any] = {
            "runs": self.runs,
            "firstViewOnly": not self.include_repeat_view,
            "location": self.location,
            "connectivity": self.connectivity,
            "private": self.private,
            "video": self.video,
            "timeline": self.timeline,
            "aftRenderingTime": self.aft_rendering_time,
            "label": self.label,
            "pollResults": self.poll_results,
            "timeout": self.timeout,
        }
        return copy.deepcopy(options)
