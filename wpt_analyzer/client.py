"""Async client for the WebPageTest HTTP API."""

import asyncio
import logging
from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Literal

import aiohttp
from pydantic import ValidationError
from yarl import URL

from wpt_analyzer.errors import TestTimeoutError, WebPageTestError
from wpt_analyzer.models.config import WebPageTestConfig
from wpt_analyzer.models.job import ResultsResponse, SubmitResponse, TestJob

log = logging.getLogger(__name__)

type ChartType = Literal["waterfall", "connection"]

# Option name -> runtest.php parameter
TEST_PARAMETERS: Mapping[str, str] = {
    "runs": "runs",
    "firstViewOnly": "fvonly",
    "location": "location",
    "connectivity": "connectivity",
    "private": "private",
    "video": "video",
    "timeline": "timeline",
    "aftRenderingTime": "aft",
    "label": "label",
}


def _param_value(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def _cached_suffix(repeat_view: bool) -> str:
    return "_Cached" if repeat_view else ""


async def _read_json(path: str, response: aiohttp.ClientResponse) -> Any:
    try:
        return await response.json(content_type=None)
    except ValueError as error:
        raise WebPageTestError(f"Unexpected {path} response: {error}") from error


@dataclass(frozen=True, kw_only=True)
class WebPageTestClient:
    """WebPageTest API client.

    ``run_test`` consumes the options mapping it receives (poll settings are
    popped off it), so callers must hand every submission its own mapping.
    """

    config: WebPageTestConfig
    session: aiohttp.ClientSession = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: WebPageTestConfig
    ) -> AsyncGenerator["WebPageTestClient", None]:
        """Create client with managed session lifecycle."""
        base_url = URL(config.host if "://" in config.host else f"http://{config.host}")
        if not base_url.path.endswith("/"):
            base_url = base_url.with_path(f"{base_url.path}/")

        headers: dict[str, str] = {}
        if config.key is not None:
            headers["X-WPT-API-KEY"] = config.key.get_secret_value()

        async with aiohttp.ClientSession(
            base_url=base_url,
            headers=headers,
        ) as session:
            yield cls(config=config, session=session)

    async def run_test(
        self, url_or_script: str, options: dict[str, Any], *, script: bool = False
    ) -> TestJob:
        """Submit a test and wait until the service has finished it.

        ``url_or_script`` is sent as a WebPageTest script when ``script`` is set
        and as the URL to load otherwise.

        Raises:
            TestTimeoutError: If the test is not done within ``options["timeout"]``
            WebPageTestError: If the service rejects the submission

        """
        poll_interval = options.pop("pollResults", self.config.poll_results)
        timeout = options.pop("timeout", self.config.timeout)

        params = {"f": "json"}
        params["script" if script else "url"] = url_or_script
        if self.config.key is not None:
            params["k"] = self.config.key.get_secret_value()
        for name, param in TEST_PARAMETERS.items():
            value = options.pop(name, None)
            if value is not None:
                params[param] = _param_value(value)

        async with self.session.get("runtest.php", params=params) as response:
            if response.status != 200:
                text = await response.text()
                raise WebPageTestError(
                    f"Failed to submit test: {response.status} {text}"
                )
            data = await _read_json("runtest.php", response)

        try:
            submitted = SubmitResponse.model_validate(data)
        except ValidationError as error:
            raise WebPageTestError(
                f"Unexpected runtest.php response: {error}"
            ) from error

        if submitted.statusCode != 200 or submitted.data is None:
            raise WebPageTestError(
                f"Test was rejected: {submitted.statusCode} {submitted.statusText}"
            )

        test_id = submitted.data.testId
        log.info("Submitted test %s, waiting for completion...", test_id)

        results = await self.wait_for_results(
            test_id, timeout=timeout, poll_interval=poll_interval
        )
        if results.data is None:
            raise WebPageTestError(
                f"Test {test_id} finished without data: "
                f"{results.statusCode} {results.statusText}"
            )

        results.data.setdefault("id", test_id)
        return TestJob(
            status_code=results.statusCode,
            status_text=results.statusText,
            data=results.data,
        )

    async def wait_for_results(
        self,
        test_id: str,
        timeout: float = 600,
        poll_interval: float = 10,
    ) -> ResultsResponse:
        """Poll the results endpoint until the test is no longer pending.

        Raises:
            TestTimeoutError: If the test doesn't complete within timeout

        """
        deadline = asyncio.get_event_loop().time() + timeout

        while True:
            if (results := await self.get_test_results(test_id)).completed:
                return results

            if asyncio.get_event_loop().time() >= deadline:
                raise TestTimeoutError(test_id, timeout)

            log.debug(
                "Test %s still in status=%s %s",
                test_id,
                results.statusCode,
                results.statusText,
            )
            await asyncio.sleep(poll_interval)

    async def get_test_results(self, test_id: str) -> ResultsResponse:
        """Get the current state of a test."""
        data = await self._get_json("jsonResult.php", {"test": test_id})
        try:
            return ResultsResponse.model_validate(data)
        except ValidationError as error:
            raise WebPageTestError(
                f"Unexpected jsonResult.php response: {error}"
            ) from error

    async def get_har_data(self, test_id: str) -> dict[str, Any]:
        """Get the HAR of every run of a test."""
        har: dict[str, Any] = await self._get_json("export.php", {"test": test_id})
        return har

    async def get_screenshot_image(
        self, test_id: str, *, run: int, repeat_view: bool
    ) -> bytes:
        """Get the screenshot taken at the end of a run."""
        file = f"{run}{_cached_suffix(repeat_view)}_screen.png"
        return await self._get_bytes("getfile.php", {"test": test_id, "file": file})

    async def get_waterfall_image(
        self,
        test_id: str,
        *,
        run: int,
        repeat_view: bool,
        chart_type: ChartType = "waterfall",
    ) -> bytes:
        """Get the request or connection waterfall chart of a run."""
        params = {
            "test": test_id,
            "run": str(run),
            "cached": _param_value(repeat_view),
            "type": chart_type,
        }
        return await self._get_bytes("waterfall.php", params)

    async def get_chrome_trace_data(
        self, test_id: str, *, run: int, repeat_view: bool
    ) -> Any:
        """Get the Chrome trace of a run, only present for timeline tests."""
        file = f"{run}{_cached_suffix(repeat_view)}_trace.json"
        return await self._get_json("getgzip.php", {"test": test_id, "file": file})

    async def _get_json(self, path: str, params: Mapping[str, str]) -> Any:
        async with self.session.get(path, params=params) as response:
            if response.status != 200:
                text = await response.text()
                raise WebPageTestError(
                    f"Failed to get {path}: {response.status} {text}"
                )
            return await _read_json(path, response)

    async def _get_bytes(self, path: str, params: Mapping[str, str]) -> bytes:
        async with self.session.get(path, params=params) as response:
            if response.status != 200:
                text = await response.text()
                raise WebPageTestError(
                    f"Failed to get {path}: {response.status} {text}"
                )
            return await response.read()
