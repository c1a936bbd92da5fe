"""Concurrent collection of the artifacts of a finished test."""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from wpt_analyzer.client import ChartType, WebPageTestClient
from wpt_analyzer.models.config import View
from wpt_analyzer.storage.base import StorageManager

log = logging.getLogger(__name__)

WATERFALLS: Sequence[tuple[ChartType, str]] = (
    ("waterfall", "waterfall"),
    ("connection", "connection waterfall"),
)


def screenshot_filename(run: int, view: View) -> str:
    """Filename of the screenshot of a run."""
    return f"wpt-{run}-{view}.png"


def waterfall_filename(run: int, view: View, chart_type: ChartType) -> str:
    """Filename of a waterfall chart of a run."""
    if chart_type == "connection":
        return f"wpt-waterfall-connection-{run}-{view}.png"
    return f"wpt-waterfall-{run}-{view}.png"


def trace_key(run: int, view: View) -> str:
    """Key of a Chrome trace in the collected traces."""
    return f"trace-{run}-wpt-{view}"


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__


@dataclass(frozen=True, kw_only=True)
class CollectedArtifacts:
    """Artifacts that are handed back rather than written to storage."""

    request_log: dict[str, Any] | None
    traces: Mapping[str, Any]


@dataclass(kw_only=True)
class _JobArtifacts:
    """Mutable state of one collection, never shared between jobs."""

    client: WebPageTestClient
    storage: StorageManager
    logger: logging.Logger
    url: str
    job_id: str
    fetch_timeout: float | None
    limiter: asyncio.Semaphore | None
    request_log: dict[str, Any] | None = None
    traces: dict[str, Any] = field(default_factory=dict)

    async def _fetch[T](
        self,
        kind: str,
        request: Awaitable[T],
        run: int | None = None,
        view: View | None = None,
    ) -> T | None:
        """Await a single request, logging instead of raising on failure."""
        slot = self.limiter if self.limiter is not None else contextlib.nullcontext()
        try:
            async with slot:
                async with asyncio.timeout(self.fetch_timeout):
                    return await request
        except Exception as error:
            if run is None:
                self.logger.warning(
                    "Couldn't get %s for id %s: %s (url = %s)",
                    kind,
                    self.job_id,
                    _describe(error),
                    self.url,
                )
            else:
                self.logger.warning(
                    "Couldn't get %s for id %s, run %d, view %s from the WebPageTest "
                    "API with the error: %s (url = %s)",
                    kind,
                    self.job_id,
                    run,
                    view,
                    _describe(error),
                    self.url,
                )
            return None

    async def fetch_request_log(self) -> None:
        self.request_log = await self._fetch(
            "HAR", self.client.get_har_data(self.job_id)
        )

    async def fetch_trace(self, run: int, view: View) -> None:
        trace = await self._fetch(
            "chrome trace",
            self.client.get_chrome_trace_data(
                self.job_id, run=run, repeat_view=view == "repeatView"
            ),
            run,
            view,
        )
        if trace is not None:
            self.traces[trace_key(run, view)] = trace

    async def persist(
        self,
        kind: str,
        request: Awaitable[bytes],
        filename: str,
        category: str,
        run: int,
        view: View,
    ) -> None:
        data = await self._fetch(kind, request, run, view)
        if data is None:
            return

        try:
            await self.storage.write_data_for_url(data, filename, self.url, category)
        except Exception as error:
            self.logger.warning(
                "Couldn't store %s %s for id %s, run %d, view %s: %s (url = %s)",
                kind,
                filename,
                self.job_id,
                run,
                view,
                _describe(error),
                self.url,
            )


@dataclass(frozen=True, kw_only=True)
class ArtifactCollector:
    """Fetches every artifact of a test at once and waits for all of them.

    A failing request or storage write is logged and skipped; it never stops
    the other requests of the batch and never raises out of ``collect``.
    """

    client: WebPageTestClient
    storage: StorageManager
    fetch_timeout: float | None = None
    max_concurrent_fetches: int | None = None
    logger: logging.Logger = field(default=log, repr=False)

    async def collect(
        self,
        url: str,
        job_id: str,
        views: Sequence[View],
        runs: int,
        capture_trace: bool,
    ) -> CollectedArtifacts:
        """Collect HAR, screenshots, waterfalls and optionally traces.

        Screenshots and waterfalls go to storage, the HAR and traces are
        returned.
        """
        job = _JobArtifacts(
            client=self.client,
            storage=self.storage,
            logger=self.logger,
            url=url,
            job_id=job_id,
            fetch_timeout=self.fetch_timeout,
            limiter=(
                asyncio.Semaphore(self.max_concurrent_fetches)
                if self.max_concurrent_fetches
                else None
            ),
        )

        requests: list[Awaitable[None]] = [job.fetch_request_log()]
        for view in views:
            repeat_view = view == "repeatView"
            for run in range(1, runs + 1):
                requests.append(
                    job.persist(
                        "screenshot",
                        self.client.get_screenshot_image(
                            job_id, run=run, repeat_view=repeat_view
                        ),
                        screenshot_filename(run, view),
                        "screenshots",
                        run,
                        view,
                    )
                )
                for chart_type, kind in WATERFALLS:
                    requests.append(
                        job.persist(
                            kind,
                            self.client.get_waterfall_image(
                                job_id,
                                run=run,
                                repeat_view=repeat_view,
                                chart_type=chart_type,
                            ),
                            waterfall_filename(run, view, chart_type),
                            "waterfall",
                            run,
                            view,
                        )
                    )
                if capture_trace:
                    requests.append(job.fetch_trace(run, view))

        self.logger.debug(
            "Fetching %d artifact(s) for id %s (url = %s)",
            len(requests),
            job_id,
            url,
        )
        await asyncio.gather(*requests)

        return CollectedArtifacts(request_log=job.request_log, traces=job.traces)
