"""Metric paths reported per page and helpers to pick them out of a result."""

from collections.abc import Iterator, Mapping, Sequence
from typing import Any

# Metrics reported per tested page
DEFAULT_PAGE_SUMMARY_METRICS: tuple[str, ...] = (
    "data.median.*.SpeedIndex",
    "data.median.*.render",
    "data.median.*.TTFB",
    "data.median.*.loadTime",
    "data.median.*.fullyLoaded",
    "data.median.*.userTimes.*",
    # bytesIn is the only size reported for Opera Mini & UC Mini
    "data.median.*.bytesIn",
    "data.median.*.breakdown.*.requests",
    "data.median.*.breakdown.*.bytes",
    "data.median.*.requestsFull",
    "data.median.*.custom.*",
    "data.median.*.domContentLoadedEventEnd",
    "data.median.*.fullyLoadedCPUms",
    "data.median.*.docCPUms",
    "data.median.*.score_cache",
    "data.median.*.score_gzip",
    "data.median.*.score_combine",
    "data.median.*.score_minify",
    "data.median.*.domElements",
    "data.median.*.lastVisualChange",
    "data.median.*.visualComplete85",
    "data.median.*.visualComplete90",
    "data.median.*.visualComplete95",
    "data.median.*.visualComplete99",
    "data.median.*.FirstInteractive",
    "data.median.*.LastInteractive",
    "data.median.*.TimeToInteractive",
    "data.median.*.heroElementTimes.*",
    # Only present for Chrome tests run with the timeline
    "data.median.*.chromeUserTiming.*",
    "data.median.*.cpuTimes.*",
    "data.median.*.TotalBlockingTime",
    "data.median.*.maxFID",
    "data.standardDeviation.*.SpeedIndex",
    "data.standardDeviation.*.render",
    "data.standardDeviation.*.TTFB",
    "data.standardDeviation.*.loadTime",
    "data.standardDeviation.*.fullyLoaded",
    "data.standardDeviation.*.userTimes.*",
    "data.standardDeviation.*.lastVisualChange",
    "data.standardDeviation.*.visualComplete85",
    "data.standardDeviation.*.visualComplete90",
    "data.standardDeviation.*.visualComplete95",
    "data.standardDeviation.*.visualComplete99",
    "data.standardDeviation.*.FirstInteractive",
    "data.standardDeviation.*.LastInteractive",
    "data.standardDeviation.*.TimeToInteractive",
    "data.standardDeviation.*.heroElementTimes.*",
)

# Metrics reported per domain, test or group
DEFAULT_SUMMARY_METRICS: tuple[str, ...] = (
    "timing.*.SpeedIndex",
    "timing.*.render",
    "timing.*.TTFB",
    "timing.*.fullyLoaded",
    "asset.*.breakdown.*.requests",
    "asset.*.breakdown.*.bytes",
    "custom.*.custom.*",
)

DOMAIN_METRICS: tuple[str, ...] = (
    "data.median.firstView.domains.*.bytes",
    "data.median.firstView.domains.*.requests",
)


def custom_metric_names(data: Mapping[str, Any]) -> Sequence[str]:
    """Names of the custom metrics the test script defined, if any."""
    first_view = (data.get("median") or {}).get("firstView") or {}
    custom = first_view.get("custom") or ()
    return [str(name) for name in custom]


def page_summary_metrics(
    domains_dashboard: bool = False,
    custom_metrics: Sequence[str] = (),
) -> tuple[str, ...]:
    """Build the metric paths to report for a page.

    Domain metrics take a lot of space, so they are opt-in.
    """
    metrics = DEFAULT_PAGE_SUMMARY_METRICS
    if domains_dashboard:
        metrics += DOMAIN_METRICS
    return metrics + tuple(f"data.median.*.{name}" for name in custom_metrics)


def _leaves(
    value: Any, prefix: tuple[str, ...]
) -> Iterator[tuple[tuple[str, ...], Any]]:
    if isinstance(value, Mapping):
        for key, child in value.items():
            yield from _leaves(child, (*prefix, str(key)))
    else:
        yield prefix, value


def _matches(path: tuple[str, ...], pattern: tuple[str, ...]) -> bool:
    return len(path) == len(pattern) and all(
        expected in ("*", actual) for actual, expected in zip(path, pattern)
    )


def select_metrics(
    result: Mapping[str, Any], patterns: Sequence[str]
) -> dict[str, Any]:
    """Pick the leaf values whose dotted path matches one of the patterns.

    A ``*`` in a pattern matches exactly one path segment.

    Example:
        >>> select_metrics({"data": {"median": {"firstView": {"TTFB": 120}}}},
        ...                ["data.median.*.TTFB"])
        {'data.median.firstView.TTFB': 120}

    """
    split_patterns = [tuple(pattern.split(".")) for pattern in patterns]
    return {
        ".".join(path): value
        for path, value in _leaves(result, ())
        if any(_matches(path, pattern) for pattern in split_patterns)
    }


def location_slug(location: str) -> str:
    """Lowercased location with ``:`` and spaces turned into dashes."""
    return location.replace(":", "-").replace(" ", "-").lower()


def connectivity_slug(connectivity: str | None) -> str:
    """Lowercased connectivity, ``native`` when the test used none."""
    return (connectivity or "native").lower()
