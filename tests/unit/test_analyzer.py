"""Tests for the URL analyzer."""

import asyncio
import logging
from typing import Any
from unittest.mock import Mock

import aiohttp
import pytest

from wpt_analyzer.analyzer import UrlAnalyzer
from wpt_analyzer.client import WebPageTestClient
from wpt_analyzer.errors import TestTimeoutError, WebPageTestError
from wpt_analyzer.models.config import WebPageTestConfig
from wpt_analyzer.models.job import TestJob
from wpt_analyzer.models.result import Completed, Suppressed
from wpt_analyzer.storage.base import StorageManager
from wpt_analyzer.testing.factories import TestJobFactory, WebPageTestConfigFactory
from wpt_analyzer.testing.payloads import (
    PNG_BYTES,
    har,
    results_data,
    trace_events,
    view_metrics,
)

URL = "https://example.com"


@pytest.fixture
def client_mock() -> Mock:
    """Create mock client with a finished two run test."""
    client = Mock(spec=WebPageTestClient)
    client.run_test.return_value = TestJobFactory.build()
    client.get_har_data.return_value = har()
    client.get_screenshot_image.return_value = PNG_BYTES
    client.get_waterfall_image.return_value = PNG_BYTES
    client.get_chrome_trace_data.return_value = trace_events()
    return client


@pytest.fixture
def storage_mock() -> Mock:
    """Create mock storage."""
    return Mock(spec=StorageManager)


def make_analyzer(
    client: Mock, storage: Mock, config: WebPageTestConfig | None = None
) -> UrlAnalyzer:
    """Create analyzer with mock collaborators."""
    return UrlAnalyzer(
        client=client,
        storage=storage,
        config=config or WebPageTestConfigFactory.build(),
    )


def assert_no_artifact_requests(client: Mock) -> None:
    """Assert that nothing but the submission reached the client."""
    client.get_har_data.assert_not_called()
    client.get_screenshot_image.assert_not_called()
    client.get_waterfall_image.assert_not_called()
    client.get_chrome_trace_data.assert_not_called()


async def test_collects_first_view_artifacts_without_trace(
    client_mock: Mock,
    storage_mock: Mock,
) -> None:
    """Two first view runs without timeline give six images, one HAR, no traces."""
    config = WebPageTestConfigFactory.build(runs=2, timeline=False)
    analyzer = make_analyzer(client_mock, storage_mock, config)

    outcome = await analyzer.analyze(URL)

    assert isinstance(outcome, Completed)
    assert outcome.url == URL
    assert client_mock.get_har_data.await_count == 1
    assert client_mock.get_screenshot_image.await_count == 2
    waterfall_calls = client_mock.get_waterfall_image.await_args_list
    assert [c.kwargs["chart_type"] for c in waterfall_calls].count("waterfall") == 2
    assert [c.kwargs["chart_type"] for c in waterfall_calls].count("connection") == 2
    client_mock.get_chrome_trace_data.assert_not_called()
    assert outcome.result.traces == {}
    assert outcome.result.request_log == har()
    assert outcome.result.data["id"] == "240101_AB_1"


async def test_collects_traces_for_every_view_and_run(
    client_mock: Mock,
    storage_mock: Mock,
) -> None:
    """Timeline tests return one trace per view and run."""
    config = WebPageTestConfigFactory.build(
        runs=2, timeline=True, include_repeat_view=True
    )
    client_mock.run_test.return_value = TestJobFactory.build(
        data=results_data(views=("firstView", "repeatView"))
    )

    outcome = await make_analyzer(client_mock, storage_mock, config).analyze(URL)

    assert isinstance(outcome, Completed)
    assert set(outcome.result.traces) == {
        "trace-1-wpt-firstView",
        "trace-2-wpt-firstView",
        "trace-1-wpt-repeatView",
        "trace-2-wpt-repeatView",
    }
    assert storage_mock.write_data_for_url.await_count == 12


async def test_timeout_is_suppressed_and_points_at_setting(
    client_mock: Mock,
    storage_mock: Mock,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """A timed out test yields no result and explains how to wait longer."""
    client_mock.run_test.side_effect = TestTimeoutError("240101_AB_1", 600)

    with caplog.at_level(logging.ERROR):
        outcome = await make_analyzer(client_mock, storage_mock).analyze(URL)

    assert outcome == Suppressed(
        url=URL,
        reason="timeout",
        message="Test 240101_AB_1 did not complete within 600 seconds",
    )
    assert "configuring timeout to a higher value" in caplog.text
    assert "currently 600 seconds" in caplog.text
    assert_no_artifact_requests(client_mock)


@pytest.mark.parametrize(
    "error",
    [
        WebPageTestError("Test was rejected: 400 Invalid location"),
        aiohttp.ClientConnectionError("Cannot connect to host"),
        TimeoutError(),
    ],
)
async def test_submission_failure_is_suppressed(
    client_mock: Mock,
    storage_mock: Mock,
    caplog: pytest.LogCaptureFixture,
    error: Exception,
) -> None:
    """Any other submission error yields a transport suppression."""
    client_mock.run_test.side_effect = error

    with caplog.at_level(logging.ERROR):
        outcome = await make_analyzer(client_mock, storage_mock).analyze(URL)

    assert isinstance(outcome, Suppressed)
    assert outcome.reason == "transport"
    assert "Could not run test for WebPageTest" in caplog.text
    assert_no_artifact_requests(client_mock)


async def test_unexpected_error_propagates(
    client_mock: Mock,
    storage_mock: Mock,
) -> None:
    """Programming errors are not mistaken for submission failures."""
    client_mock.run_test.side_effect = KeyError("id")

    with pytest.raises(KeyError):
        await make_analyzer(client_mock, storage_mock).analyze(URL)


async def test_multistep_test_is_suppressed_without_fetching(
    client_mock: Mock,
    storage_mock: Mock,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Multi step scripts stop before any artifact request."""
    client_mock.run_test.return_value = TestJobFactory.build(
        data=results_data(first_view=view_metrics(num_steps=2))
    )

    with caplog.at_level(logging.INFO):
        outcome = await make_analyzer(client_mock, storage_mock).analyze(URL)

    assert outcome == Suppressed(url=URL, reason="multistep")
    assert "Multi step WebPageTest scripting is not supported" in caplog.text
    assert_no_artifact_requests(client_mock)
    storage_mock.write_data_for_url.assert_not_called()


async def test_unsuccessful_status_still_collects_artifacts(
    client_mock: Mock,
    storage_mock: Mock,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """A non-200 test with data continues, partial data may still be usable."""
    client_mock.run_test.return_value = TestJobFactory.build(
        status_code=400, status_text="Test failed"
    )

    with caplog.at_level(logging.ERROR):
        outcome = await make_analyzer(client_mock, storage_mock).analyze(URL)

    assert isinstance(outcome, Completed)
    assert client_mock.get_har_data.await_count == 1
    assert "The test got status code 400 from WebPageTest with Test failed" in (
        caplog.text
    )


async def test_user_timing_is_normalized_before_result(
    client_mock: Mock,
    storage_mock: Mock,
) -> None:
    """The result carries the flattened user timing map."""
    client_mock.run_test.return_value = TestJobFactory.build(
        data=results_data(
            first_view=view_metrics(
                chromeUserTiming=[{"name": "a", "time": 5}, {"name": "b", "value": 7}]
            )
        )
    )

    outcome = await make_analyzer(client_mock, storage_mock).analyze(URL)

    assert isinstance(outcome, Completed)
    first_view = outcome.result.data["median"]["firstView"]
    assert first_view["chromeUserTiming"] == {"a": 5, "b": 7}


async def test_failed_artifacts_still_produce_result(
    client_mock: Mock,
    storage_mock: Mock,
) -> None:
    """Missing HAR and traces leave gaps, not errors."""
    client_mock.get_har_data.side_effect = WebPageTestError("no HAR")
    client_mock.get_chrome_trace_data.side_effect = WebPageTestError("no trace")

    config = WebPageTestConfigFactory.build(timeline=True)

    outcome = await make_analyzer(client_mock, storage_mock, config).analyze(URL)

    assert isinstance(outcome, Completed)
    assert outcome.result.request_log is None
    assert outcome.result.traces == {}
    assert storage_mock.write_data_for_url.await_count == 6


async def test_submits_script_with_url_substituted(
    client_mock: Mock,
    storage_mock: Mock,
) -> None:
    """Replaces every placeholder of the script template."""
    config = WebPageTestConfigFactory.build(
        script="navigate\t{{{URL}}}\nexecAndWait\t{{{URL}}}"
    )

    await make_analyzer(client_mock, storage_mock, config).analyze(URL)

    submitted = client_mock.run_test.await_args.args[0]
    assert submitted == f"navigate\t{URL}\nexecAndWait\t{URL}"
    assert client_mock.run_test.await_args.kwargs["script"] is True


async def test_submits_single_line_script_as_script(
    client_mock: Mock,
    storage_mock: Mock,
) -> None:
    """A one line template is still sent as a script, not as a URL."""
    config = WebPageTestConfigFactory.build(script="navigate {{{URL}}}")

    await make_analyzer(client_mock, storage_mock, config).analyze(URL)

    call = client_mock.run_test.await_args
    assert call.args[0] == f"navigate {URL}"
    assert call.kwargs["script"] is True


async def test_submits_raw_url_without_script(
    client_mock: Mock,
    storage_mock: Mock,
) -> None:
    """Submits the URL itself when no script is configured."""
    await make_analyzer(client_mock, storage_mock).analyze(URL)

    assert client_mock.run_test.await_args.args[0] == URL
    assert client_mock.run_test.await_args.kwargs["script"] is False


async def test_concurrent_calls_get_independent_options(
    client_mock: Mock,
    storage_mock: Mock,
) -> None:
    """Options mutated by one submission are invisible to the other."""
    config = WebPageTestConfigFactory.build(runs=3, location="Dulles:Chrome")
    expected = config.test_options()
    seen: list[dict[str, Any]] = []

    async def consuming_run_test(
        url_or_script: str, options: dict[str, Any], *, script: bool = False
    ) -> TestJob:
        seen.append(dict(options))
        options["location"] = "mutated"
        options.pop("runs")
        await asyncio.sleep(0.01)
        seen.append(dict(options))
        return TestJobFactory.build(
            data=results_data(test_id=f"id-{url_or_script}")
        )

    client_mock.run_test.side_effect = consuming_run_test
    analyzer = make_analyzer(client_mock, storage_mock, config)

    outcomes = await asyncio.gather(
        analyzer.analyze("https://example.com/a"),
        analyzer.analyze("https://example.com/b"),
    )

    assert all(isinstance(outcome, Completed) for outcome in outcomes)
    first_options, second_options = (
        call.args[1] for call in client_mock.run_test.await_args_list
    )
    assert first_options is not second_options
    assert seen[0] == expected
    assert seen[1] == expected
    assert config.test_options() == expected
    assert config.runs == 3
    assert config.location == "Dulles:Chrome"
