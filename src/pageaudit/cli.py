"""
Command-line interface for the page analyzer.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pageaudit.config import DEFAULT_USER_AGENT, AnalyzerConfig
from pageaudit.core import NO_VERSION, AnalysisError, Report, analyze

logger = logging.getLogger("pageaudit")


def print_summary(report: Report) -> None:
    """Print analysis summary to stderr."""
    sys.stderr.write("=" * 50 + "\n")
    sys.stderr.write("PAGE SUMMARY\n")
    sys.stderr.write("=" * 50 + "\n\n")

    sys.stderr.write(f"URL:        {report.url}\n")
    sys.stderr.write(f"Version:    {report.version or NO_VERSION}\n")
    sys.stderr.write(f"Title:      {report.title.strip()}\n")
    headings = "  ".join(f"{tag}={count}" for tag, count in report.headings.items())
    sys.stderr.write(f"Headings:   {headings}\n\n")

    sys.stderr.write(
        f"found {len(report.internal)} internal links and {len(report.external)} external\n"
    )
    if report.login_candidates:
        sys.stderr.write(f"found {len(report.login_candidates)} login links\n")
    else:
        sys.stderr.write("no login found\n")

    sys.stderr.write(f"found {len(report.unreachable)} inaccessible links\n")
    for link in sorted(report.unreachable):
        sys.stderr.write(f"  ✗ {link}\n")

    if not report.complete:
        sys.stderr.write(
            f"check incomplete: {len(report.not_probed)} links were not probed\n"
        )

    sys.stderr.write("\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="page-audit",
        description="Analyse a web page's structure and report which of its links are unreachable.",
    )
    parser.add_argument("url", help="Page URL to analyse (e.g. https://example.com/)")
    parser.add_argument("--timeout", type=float, default=15.0, help="Page fetch timeout in seconds (default: 15)")
    parser.add_argument("--user-agent", default=DEFAULT_USER_AGENT, help="User-Agent header")
    parser.add_argument("--parser", default="lxml", help="BeautifulSoup tree builder (default: lxml)")
    parser.add_argument(
        "--skip-empty-links",
        action="store_true",
        help="Ignore anchors with an empty or missing href",
    )
    parser.add_argument("--probe-timeout", type=float, default=10.0, help="Per-link probe timeout in seconds (default: 10)")
    parser.add_argument("--probe-method", default="HEAD", help="HTTP method used to probe links (default: HEAD)")
    parser.add_argument("--max-concurrency", type=int, default=20, help="Maximum probes in flight (default: 20)")
    parser.add_argument("--deadline", type=float, help="Stop probing after this many seconds and report what finished")
    parser.add_argument("--out", default="-", help="Output file path, or '-' for stdout (default: -)")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    parser.add_argument("--verbose", action="store_true", help="Show progress and summary")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the page-audit CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.url.strip():
        parser.error("missing url")

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        config = AnalyzerConfig(
            timeout_s=args.timeout,
            user_agent=args.user_agent,
            parser=args.parser,
            keep_empty_links=not args.skip_empty_links,
            probe_timeout_s=args.probe_timeout,
            probe_method=args.probe_method,
            max_concurrency=args.max_concurrency,
            deadline_s=args.deadline,
        )
    except ValueError as e:
        parser.error(str(e))

    try:
        report = analyze(args.url, config)
    except AnalysisError as e:
        logger.critical("Analysis aborted: %s", e)
        return 1

    if args.verbose:
        print_summary(report)

    json_text = json.dumps(report.to_dict(), ensure_ascii=False, indent=2 if args.pretty else None)

    if args.out == "-":
        print(json_text)
    else:
        output_path = Path(args.out)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json_text, encoding="utf-8")
        if args.verbose:
            sys.stderr.write(f"Report written to: {output_path}\n")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
