"""Orchestrator for testing many URLs concurrently."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from wpt_analyzer.analyzer import UrlAnalyzer
from wpt_analyzer.models.result import Completed, Outcome, Suppressed

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class UrlReport:
    """What happened to one URL."""

    url: str
    status: Literal["completed", "suppressed", "error"]
    outcome: Outcome | None = None
    message: str | None = None


@dataclass(frozen=True, kw_only=True)
class AnalysisOrchestrator:
    """Runs the analyzer for every URL, isolating each URL from the others."""

    analyzer: UrlAnalyzer

    async def run(self, urls: Sequence[str]) -> Sequence[UrlReport]:
        """Test all URLs concurrently.

        Args:
            urls: URLs to test, each one gets its own WebPageTest test

        Returns:
            One report per URL, in the order of ``urls``

        """
        if not urls:
            log.info("No URLs provided")
            return []

        log.info("Testing %d URL(s) on WebPageTest...", len(urls))
        outcomes = await asyncio.gather(
            *(self.analyzer.analyze(url) for url in urls), return_exceptions=True
        )
        log.info("Testing completed")

        return self._process_outcomes(urls, outcomes)

    def _process_outcomes(
        self,
        urls: Sequence[str],
        outcomes: Sequence[Outcome | BaseException],
    ) -> Sequence[UrlReport]:
        """Turn outcomes into reports, handling unexpected exceptions."""
        reports: list[UrlReport] = []

        for url, outcome in zip(urls, outcomes, strict=True):
            if isinstance(outcome, Completed):
                log.info(
                    "URL completed: url=%s id=%s traces=%d har=%s",
                    url,
                    outcome.result.data.get("id"),
                    len(outcome.result.traces),
                    outcome.result.request_log is not None,
                )
                reports.append(UrlReport(url=url, status="completed", outcome=outcome))
            elif isinstance(outcome, Suppressed):
                log.info("URL suppressed: url=%s reason=%s", url, outcome.reason)
                reports.append(
                    UrlReport(
                        url=url,
                        status="suppressed",
                        outcome=outcome,
                        message=outcome.message or outcome.reason,
                    )
                )
            elif isinstance(outcome, Exception):
                log.error(
                    "Error creating WebPageTest result for %s: %s",
                    url,
                    outcome,
                    exc_info=outcome,
                )
                reports.append(UrlReport(url=url, status="error", message=str(outcome)))
            else:
                raise outcome

        return reports
