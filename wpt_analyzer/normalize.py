"""Checks and reshaping applied to a finished test before collecting artifacts."""

from typing import Any

from wpt_analyzer.models.job import TestJob


def is_multistep(job: TestJob) -> bool:
    """Whether the test ran a script with more than one step."""
    first_view = job.first_view_median
    return bool(first_view and (first_view.get("numSteps") or 0) > 1)


def flatten_user_timing(measures: list[dict[str, Any]]) -> dict[str, Any]:
    """Turn ``[{"name": "a", "time": 5}, ...]`` into ``{"a": 5, ...}``.

    ``time`` wins over ``value`` unless it is missing or zero.
    """
    return {
        measure["name"]: measure.get("time") or measure.get("value")
        for measure in measures
    }


def normalize_user_timing(job: TestJob) -> dict[str, Any] | None:
    """Replace the first view's chromeUserTiming list with a name to value map.

    Modifies ``job.data`` in place. Only done for successful tests that ran
    with the timeline enabled.

    Returns:
        The flattened mapping, or None if nothing was changed

    """
    first_view = job.first_view_median
    if job.status_code != 200 or not first_view:
        return None

    measures = first_view.get("chromeUserTiming")
    if not isinstance(measures, list):
        return None

    flattened = flatten_user_timing(measures)
    first_view["chromeUserTiming"] = flattened
    return flattened
