"""Command line interface for the documentation queue."""

import argparse
import asyncio
import logging
import sys

from .commands import CommandResult, Commands, build_context
from .config import Settings
from .exceptions import ConfigError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Queue, ingest and search documentation sources"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Process the queue")
    run.add_argument(
        "--max-concurrent",
        type=int,
        default=3,
        help="Number of items processed concurrently per batch (1-5)"
    )
    run.add_argument(
        "--retry-attempts",
        type=int,
        default=3,
        help="Attempts per item before giving up (0-5)"
    )
    run.add_argument(
        "--retry-delay",
        type=int,
        default=1000,
        help="Delay between attempts in milliseconds (1000-10000)"
    )
    run.add_argument(
        "--requeue-failed",
        action="store_true",
        help="Append failed items back to the queue after the run"
    )

    subparsers.add_parser("list", help="Show the pending queue")
    subparsers.add_parser("clear", help="Remove every entry from the queue")

    add = subparsers.add_parser("add", help="Append URLs or paths to the queue")
    add.add_argument("items", nargs="+", help="URLs or local paths")

    remove = subparsers.add_parser("remove", help="Remove exact entries from the queue")
    remove.add_argument("paths", nargs="+", help="Entries to remove")

    sources = subparsers.add_parser("sources", help="List stored documentation sources")
    sources.add_argument(
        "--expanded",
        action="store_true",
        help="Show every page URL under each web source"
    )

    remove_docs = subparsers.add_parser("remove-docs", help="Remove stored documents")
    remove_docs.add_argument(
        "--path",
        action="append",
        default=[],
        dest="paths",
        help="Local file or directory to remove (repeatable)"
    )
    remove_docs.add_argument(
        "--url",
        action="append",
        default=[],
        dest="urls",
        help="Web URL to remove (repeatable)"
    )

    add_url = subparsers.add_parser("add-url", help="Ingest a web page now")
    add_url.add_argument("url", help="Page URL, including protocol")

    add_local = subparsers.add_parser("add-local", help="Ingest a local file or directory now")
    add_local.add_argument("path", help="File or directory path")

    extract = subparsers.add_parser("extract-urls", help="List documentation links on a page")
    extract.add_argument("url", help="Page URL, including protocol")
    extract.add_argument(
        "--add-to-queue",
        action="store_true",
        help="Append the links found to the queue"
    )

    check = subparsers.add_parser("check-files", help="List files under a path")
    check.add_argument("path", help="File or directory path")
    check.add_argument(
        "--add-to-queue",
        action="store_true",
        help="Append the files found to the queue"
    )

    search = subparsers.add_parser("search", help="Search stored documentation")
    search.add_argument("query", help="Search text")
    search.add_argument(
        "--limit",
        type=int,
        default=5,
        help="Maximum number of results (1-20)"
    )

    subparsers.add_parser("wipe", help="Delete every stored document")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0", help="Host to bind")
    serve.add_argument("--port", type=int, default=8000, help="Port to bind")

    return parser


async def dispatch(commands: Commands, args: argparse.Namespace) -> CommandResult:
    """Call the command selected on the command line."""
    if args.command == "run":
        return await commands.run_queue(
            max_concurrent=args.max_concurrent,
            retry_attempts=args.retry_attempts,
            retry_delay=args.retry_delay,
            failure_policy="requeue" if args.requeue_failed else "drop",
        )
    if args.command == "list":
        return await commands.list_queue()
    if args.command == "clear":
        return await commands.clear_queue()
    if args.command == "add":
        return await commands.enqueue(args.items)
    if args.command == "remove":
        return await commands.remove_from_queue(args.paths)
    if args.command == "sources":
        return await commands.list_sources(expanded=args.expanded)
    if args.command == "remove-docs":
        return await commands.remove_documentation(paths=args.paths, urls=args.urls)
    if args.command == "add-url":
        return await commands.add_documentation(args.url)
    if args.command == "add-local":
        return await commands.add_local_documentation(args.path)
    if args.command == "extract-urls":
        return await commands.extract_urls(args.url, add_to_queue=args.add_to_queue)
    if args.command == "check-files":
        return await commands.check_files(args.path, add_to_queue=args.add_to_queue)
    if args.command == "search":
        return await commands.search_documentation(args.query, limit=args.limit)
    if args.command == "wipe":
        return await commands.wipe_database()
    raise ValueError(f"Unknown command: {args.command}")


async def _run(settings: Settings, args: argparse.Namespace) -> CommandResult:
    context = build_context(settings)
    try:
        await context.prepare()
        return await dispatch(Commands(context), args)
    finally:
        await context.close()


def main(argv=None):
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        import uvicorn
        uvicorn.run("ragdocs.api:app", host=args.host, port=args.port)
        return

    try:
        settings = Settings.from_env()
    except ConfigError as e:
        logger.error(str(e))
        sys.exit(1)

    result = asyncio.run(_run(settings, args))
    print(result.text)
    if result.is_error:
        sys.exit(1)


if __name__ == "__main__":
    main()
