"""Test a single URL on WebPageTest and gather everything it produced."""

import json
import logging
from dataclasses import dataclass, field

import aiohttp

from wpt_analyzer.client import WebPageTestClient
from wpt_analyzer.collector import ArtifactCollector
from wpt_analyzer.errors import TestTimeoutError, WebPageTestError
from wpt_analyzer.models.config import WebPageTestConfig
from wpt_analyzer.models.job import TestJob
from wpt_analyzer.models.result import (
    AssembledResult,
    Completed,
    Outcome,
    Suppressed,
)
from wpt_analyzer.normalize import is_multistep, normalize_user_timing
from wpt_analyzer.storage.base import StorageManager

log = logging.getLogger(__name__)

MULTISTEP_MESSAGE = (
    "Multi step WebPageTest scripting is not supported, "
    "test %s for %s is skipped"
)


@dataclass(frozen=True, kw_only=True)
class UrlAnalyzer:
    """Runs one WebPageTest test per URL and collects its artifacts.

    Holds no per-call state, so ``analyze`` can run for many URLs at once.
    """

    client: WebPageTestClient
    storage: StorageManager
    config: WebPageTestConfig
    logger: logging.Logger = field(default=log, repr=False)

    async def analyze(self, url: str) -> Outcome:
        """Test the URL and assemble the result.

        Submission failures and multi step tests resolve to ``Suppressed``;
        failing artifact downloads only leave gaps in the result.
        """
        submitted = await self.submit(url)
        if isinstance(submitted, Suppressed):
            return submitted
        job = submitted

        if job.status_code == 200:
            self.logger.info("WebPageTest result at: %s", job.summary)
        else:
            self.logger.error(
                "The test got status code %s from WebPageTest with %s. "
                "Checkout %s to try to find the original reason.",
                job.status_code,
                job.status_text,
                job.summary,
            )

        if is_multistep(job):
            self.logger.info(MULTISTEP_MESSAGE, job.id, url)
            return Suppressed(url=url, reason="multistep")

        if (user_timing := normalize_user_timing(job)) is not None:
            self.logger.debug(
                "Restructured chromeUserTiming to %s", json.dumps(user_timing)
            )

        collector = ArtifactCollector(
            client=self.client,
            storage=self.storage,
            fetch_timeout=self.config.artifact_timeout,
            max_concurrent_fetches=self.config.max_concurrent_fetches,
            logger=self.logger,
        )
        artifacts = await collector.collect(
            url,
            job.id,
            self.config.views,
            self.config.runs,
            capture_trace=self.config.timeline,
        )

        return Completed(
            url=url,
            result=AssembledResult(
                data=job.data,
                request_log=artifacts.request_log,
                traces=artifacts.traces,
            ),
        )

    async def submit(self, url: str) -> TestJob | Suppressed:
        """Submit the URL (or the configured script) and wait for the test."""
        self.logger.info("Sending url %s to test on %s", url, self.config.host)
        url_or_script = self.config.url_or_script(url)

        try:
            job = await self.client.run_test(
                url_or_script,
                self.config.test_options(),
                script=self.config.uses_script,
            )
        except TestTimeoutError as error:
            self.logger.error(
                "The test for WebPageTest timed out. Is your WebPageTest agent "
                "overloaded with work? You can try to increase how long to wait "
                "for tests to finish by configuring timeout to a higher value "
                "(currently %s seconds). (url = %s, id = %s)",
                error.timeout,
                url,
                error.test_id,
            )
            return Suppressed(url=url, reason="timeout", message=str(error))
        except (WebPageTestError, aiohttp.ClientError, TimeoutError) as error:
            self.logger.error(
                "Could not run test for WebPageTest: %s (url = %s)", error, url
            )
            return Suppressed(url=url, reason="transport", message=str(error))

        self.logger.info(
            "Got %s analysed with id %s from %s", url, job.id, self.config.host
        )
        return job
