# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""feedclip CLI: classify and extract commands.

Usage:
    feedclip classify URL
    feedclip extract --url URL [--units] [--json] [--save [ENDPOINT]]
    feedclip extract --html FILE --page-url URL [--units] [--json] [--save [ENDPOINT]]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

from feedclip import NormalizedRecord
from feedclip.config import SAVE_ENDPOINT_ENV, EngineConfig
from feedclip.document import LiveDocument
from feedclip.errors import BrowserError
from feedclip.extraction import extract
from feedclip.sources import profile_for

_BODY_PREVIEW = 60


def _require_cli_deps() -> None:
    """Check that CLI optional dependencies are installed."""
    try:
        from tabulate import tabulate  # noqa: F401
    except ImportError as e:
        print(
            f"Missing CLI dependency: {e.name}\nInstall with: pip install feedclip[cli]",
            file=sys.stderr,
        )
        sys.exit(1)


def cmd_classify(args: argparse.Namespace) -> None:
    """Print the source tag for a URL."""
    print(profile_for(args.url).source)


def _load_document(args: argparse.Namespace) -> LiveDocument:
    if args.html:
        if not args.page_url:
            print("Error: --html requires --page-url.", file=sys.stderr)
            sys.exit(1)
        path = Path(args.html)
        if not path.is_file():
            print(f"Error: HTML file not found: {path}", file=sys.stderr)
            sys.exit(1)
        return LiveDocument.from_html(path.read_text(encoding="utf-8", errors="replace"), args.page_url)

    from feedclip.browser import capture_page

    try:
        return asyncio.run(capture_page(args.url))
    except BrowserError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def collect_records(document: LiveDocument, *, units: bool, config: EngineConfig) -> list[NormalizedRecord]:
    """Page-level record, or one record per content unit in document order."""
    profile = profile_for(document.url)
    if not units:
        return [extract(document, source=profile.source, description_limit=config.description_limit)]
    if profile.unit_xpath is None:
        return []
    return [
        extract(document, unit, source=profile.source, description_limit=config.description_limit)
        for unit in document.query_all(profile.unit_xpath)
    ]


def _print_table(records: list[NormalizedRecord]) -> None:
    from tabulate import tabulate

    rows = []
    for r in records:
        body = r.body.replace("\n", " ")
        if len(body) > _BODY_PREVIEW:
            body = body[: _BODY_PREVIEW - 3] + "..."
        author = r.author_name or (f"@{r.author_handle}" if r.author_handle else "")
        rows.append([r.source, r.canonical_url, author, body, "yes" if r.media_url else ""])
    print(tabulate(rows, headers=["source", "url", "author", "body", "media"], tablefmt="simple"))


async def _save_all(endpoint: str, records: list[NormalizedRecord]) -> list[dict]:
    from feedclip.channel import ChannelAdapter, HttpCommandChannel
    from feedclip.guard import ContextGuard

    channel = HttpCommandChannel(endpoint)
    adapter = ChannelAdapter(channel, ContextGuard(channel))
    try:
        return [await adapter.request({"action": "save_post", "data": r.to_message()}) for r in records]
    finally:
        await channel.aclose()


def cmd_extract(args: argparse.Namespace) -> None:
    """Extract records from a live URL or a saved HTML file."""
    if not args.json:
        _require_cli_deps()
    if bool(args.url) == bool(args.html):
        print("Error: exactly one of --url or --html is required.", file=sys.stderr)
        sys.exit(1)

    config = EngineConfig.from_env(description_limit=args.description_limit)
    document = _load_document(args)
    records = collect_records(document, units=args.units, config=config)
    if not records:
        print(f"No content units found on {document.url}", file=sys.stderr)

    if args.json:
        payload = [r.to_message() for r in records]
        print(json.dumps(payload if args.units else payload[0], ensure_ascii=False, indent=2))
    else:
        _print_table(records)

    if args.save is None:
        return
    endpoint = args.save or os.environ.get(SAVE_ENDPOINT_ENV, "")
    if not endpoint:
        print(f"Error: --save needs an endpoint or {SAVE_ENDPOINT_ENV}.", file=sys.stderr)
        sys.exit(1)
    outcomes = asyncio.run(_save_all(endpoint, records))
    failed = [o for o in outcomes if not o.get("success")]
    for outcome in failed:
        print(f"  ERROR save: {outcome.get('error')}", file=sys.stderr)
    print(f"Saved {len(outcomes) - len(failed)}/{len(outcomes)} record(s) to {endpoint}", file=sys.stderr)
    if failed:
        sys.exit(1)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="feedclip CLI", prog="feedclip")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON lines on stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_classify = subparsers.add_parser("classify", help="Print the content source for a URL")
    p_classify.add_argument("url", metavar="URL")

    _extract_epilog = """\
examples:
  %(prog)s --url https://www.youtube.com/watch?v=abc123         Capture and extract the page
  %(prog)s --html feed.html --page-url https://x.com/home --units
  %(prog)s --html post.html --page-url URL --json --save http://localhost:3000/api/posts
"""
    p_extract = subparsers.add_parser(
        "extract",
        help="Extract records from a page",
        epilog=_extract_epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p_extract.add_argument("--url", type=str, metavar="URL", help="Live page to capture with a browser")
    p_extract.add_argument("--html", type=str, metavar="FILE", help="Saved HTML file to extract from")
    p_extract.add_argument("--page-url", type=str, metavar="URL", help="Location of the saved HTML page")
    p_extract.add_argument("--units", action="store_true", help="One record per content unit")
    p_extract.add_argument("--json", action="store_true", help="JSON output instead of a table")
    p_extract.add_argument("--description-limit", type=int, metavar="N", help="Video description chars kept")
    p_extract.add_argument(
        "--save",
        nargs="?",
        const="",
        metavar="ENDPOINT",
        help=f"POST records to ENDPOINT (default: ${SAVE_ENDPOINT_ENV})",
    )

    commands = {"classify": cmd_classify, "extract": cmd_extract}
    args = parser.parse_args(argv)

    from feedclip.logging_config import configure

    configure(json_output=args.log_json, level="DEBUG" if args.verbose else "INFO")

    try:
        commands[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except SystemExit:
        raise
    except Exception as e:
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc(file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
