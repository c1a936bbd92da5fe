"""Models for WebPageTest API responses."""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel


class SubmittedTest(BaseModel):
    """The ``data`` part of a runtest.php response."""

    testId: str
    jsonUrl: str | None = None
    userUrl: str | None = None


class SubmitResponse(BaseModel):
    """Response from runtest.php."""

    statusCode: int
    statusText: str = ""
    data: SubmittedTest | None = None


class ResultsResponse(BaseModel):
    """Response from jsonResult.php.

    Status codes below 200 mean the test is still queued or running.
    """

    statusCode: int
    statusText: str = ""
    data: dict[str, Any] | None = None

    @property
    def completed(self) -> bool:
        """Whether the service has stopped working on the test."""
        return self.statusCode >= 200


@dataclass(kw_only=True)
class TestJob:
    """A finished test as reported by the service.

    ``data`` is kept as the raw payload since downstream consumers read
    arbitrary metric paths from it. It is mutable on purpose: metric
    normalization rewrites it in place.
    """

    __test__ = False

    status_code: int
    status_text: str
    data: dict[str, Any]

    @property
    def id(self) -> str:
        """Identifier used for every artifact request of this test."""
        return str(self.data["id"])

    @property
    def summary(self) -> str | None:
        """Link to the service's own results page."""
        return self.data.get("summary")

    @property
    def first_view_median(self) -> dict[str, Any] | None:
        """Median metrics of the first view, if the service computed them."""
        median = self.data.get("median") or {}
        return median.get("firstView") or None
