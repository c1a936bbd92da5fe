"""CLI entry point for testing URLs on WebPageTest."""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from wpt_analyzer.analyzer import UrlAnalyzer
from wpt_analyzer.client import WebPageTestClient
from wpt_analyzer.metrics import (
    connectivity_slug,
    custom_metric_names,
    location_slug,
    page_summary_metrics,
    select_metrics,
)
from wpt_analyzer.models.config import WebPageTestConfig
from wpt_analyzer.models.result import Completed, Suppressed
from wpt_analyzer.orchestrator import AnalysisOrchestrator, UrlReport
from wpt_analyzer.storage.loading import load_storage_manifest

STATUS_SYMBOLS = {
    "completed": "✅",
    "suppressed": "⏭️",
    "error": "❗",
}


def log_results_summary(log: logging.Logger, reports: Sequence[UrlReport]) -> None:
    """Log a formatted summary of tested URLs with result page links."""
    log.info("=" * 80)
    log.info("WebPageTest Results Summary:")
    log.info("=" * 80)

    for report in reports:
        symbol = STATUS_SYMBOLS.get(report.status, "?")
        log.info("%s %s: %s", symbol, report.url, report.status)
        if isinstance(report.outcome, Completed):
            summary = report.outcome.result.data.get("summary")
            if summary:
                log.info("  Result: %s", summary)
        if report.message:
            log.info("  Message: %s", report.message)


def read_urls(urls: Sequence[str], urls_file: Path | None) -> Sequence[str]:
    """Combine URLs from the command line and a file, one URL per line.

    Blank lines and lines starting with ``#`` are skipped.
    """
    combined = [url.strip() for url in urls if url.strip()]
    if urls_file is not None:
        for line in urls_file.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                combined.append(line)
    return combined


def _browser(request_log: dict[str, Any] | None) -> dict[str, Any] | None:
    """Browser name and version the test ran in, as reported by the HAR."""
    return ((request_log or {}).get("log") or {}).get("browser")


def format_report(report: UrlReport, config: WebPageTestConfig) -> dict[str, Any]:
    """Format one URL report for JSON output."""
    output: dict[str, Any] = {
        "url": report.url,
        "status": report.status,
        "message": report.message,
    }

    if isinstance(report.outcome, Suppressed):
        output["reason"] = report.outcome.reason

    if isinstance(report.outcome, Completed):
        result = report.outcome.result
        patterns = page_summary_metrics(
            config.domains_dashboard, custom_metric_names(result.data)
        )
        output.update(
            {
                "id": result.data.get("id"),
                "summary_url": result.data.get("summary"),
                "location": location_slug(result.data.get("location") or ""),
                "connectivity": connectivity_slug(result.data.get("connectivity")),
                "runs": sorted(result.data.get("runs") or {}, key=int),
                "har": result.request_log is not None,
                "browser": _browser(result.request_log),
                "traces": sorted(result.traces),
                "metrics": select_metrics({"data": result.data}, patterns),
            }
        )

    return output


def format_output(
    reports: Sequence[UrlReport], config: WebPageTestConfig
) -> dict[str, Any]:
    """Format all URL reports for JSON output."""
    return {
        "total": len(reports),
        "completed": sum(1 for r in reports if r.status == "completed"),
        "suppressed": sum(1 for r in reports if r.status == "suppressed"),
        "errors": sum(1 for r in reports if r.status == "error"),
        "results": [format_report(report, config) for report in reports],
    }


def has_failures(reports: Sequence[UrlReport]) -> bool:
    """Whether a URL errored or could not be tested.

    Multi step tests are skipped on purpose and do not count as failures.
    """
    for report in reports:
        if report.status == "error":
            return True
        outcome = report.outcome
        if isinstance(outcome, Suppressed) and outcome.reason != "multistep":
            return True
    return False


async def run(
    urls: Sequence[str],
    config_json: str,
    storage_key: str = "filesystem",
    storage_config_json: str = "{}",
) -> int:
    """Test the URLs and return exit code."""
    log = logging.getLogger("wpt_analyzer")

    config = WebPageTestConfig(**json.loads(config_json))

    log.info("Loading storage: %s", storage_key)
    manifest = load_storage_manifest(storage_key)
    storage = manifest.storage_factory(
        manifest.config_cls(**json.loads(storage_config_json))
    )

    if not urls:
        log.info("No URLs to test")
        print(json.dumps(format_output([], config)))
        return 0

    async with WebPageTestClient.from_config(config) as client:
        orchestrator = AnalysisOrchestrator(
            analyzer=UrlAnalyzer(client=client, storage=storage, config=config)
        )
        reports = await orchestrator.run(urls)

    log_results_summary(log, reports)

    print(json.dumps(format_output(reports, config), indent=2))

    return 1 if has_failures(reports) else 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Test URLs on WebPageTest")
    parser.add_argument("urls", nargs="*", help="URLs to test")
    parser.add_argument(
        "--urls-file",
        type=Path,
        help="File with one URL per line",
    )
    parser.add_argument(
        "--config",
        default="{}",
        help="JSON configuration for WebPageTest (host, key, runs, ...)",
    )
    parser.add_argument(
        "--storage",
        default="filesystem",
        help="Storage key for screenshots and waterfalls",
    )
    parser.add_argument(
        "--storage-config",
        default="{}",
        help="JSON configuration for the storage",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug output",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    exit_code = asyncio.run(
        run(
            urls=read_urls(args.urls, args.urls_file),
            config_json=args.config,
            storage_key=args.storage,
            storage_config_json=args.storage_config,
        )
    )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
