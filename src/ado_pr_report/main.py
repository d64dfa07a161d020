"""Entry point for the ADO completed pull request report."""

from __future__ import annotations

import logging
import sys
from typing import Optional, Sequence

from .ado_client import AdoClient
from .cli import parse_args
from .config import load_config
from .errors import (
    AuthenticationError,
    ConfigurationError,
    FetchCancelledError,
    TransportError,
)
from .fetcher import RangeFetcher
from .report import render_report

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_CONFIGURATION = 2
EXIT_AUTHENTICATION = 3
EXIT_TRANSPORT = 4
EXIT_CANCELLED = 5


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr; debug level when ``verbose``."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _fail(message: str, exc: Exception, exit_code: int) -> int:
    logger.error(message, extra={"error": str(exc)})
    print(f"ERROR: {exc}", file=sys.stderr)
    return exit_code


def orchestrate_report(argv: Optional[Sequence[str]] = None) -> int:
    """Fetch completed pull requests in the requested window and print the report.

    Returns:
        Process exit code.
    """
    try:
        args = parse_args(argv)
        configure_logging(args.verbose)

        config = load_config(
            organization=args.org,
            project=args.project,
            repo_name=args.repo_name,
            start=args.start,
            end=args.end,
            page_size=args.page_size,
            target_branch=args.target_branch,
            output_format=args.output_format,
        )

        ado_client = AdoClient(max_attempts=args.max_attempts, target_branch=config.target_branch)
        fetcher = RangeFetcher(ado_client, assume_newest_first=not args.scan_all_pages)

        if config.endpoint.repository:
            scope = f"repository '{config.endpoint.repository}'"
        else:
            scope = f"project '{config.endpoint.project}'"
        print(
            f"Fetching pull requests completed between {config.window.start.isoformat()} "
            f"and {config.window.end.isoformat()} for {scope}...",
            file=sys.stderr,
        )

        result = fetcher.fetch(
            config.endpoint,
            config.pat,
            config.window,
            config.page_size,
        )

        print(render_report(result, config.output_format))
        return EXIT_OK
    except ConfigurationError as exc:
        return _fail("Configuration error", exc, EXIT_CONFIGURATION)
    except AuthenticationError as exc:
        return _fail("Authentication error", exc, EXIT_AUTHENTICATION)
    except TransportError as exc:
        return _fail("Azure DevOps request failed", exc, EXIT_TRANSPORT)
    except FetchCancelledError as exc:
        return _fail("Fetch cancelled", exc, EXIT_CANCELLED)
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return EXIT_CANCELLED
    except Exception:
        logger.exception("Unexpected error while generating report")
        print("ERROR: unexpected failure; rerun with --verbose for details.", file=sys.stderr)
        return EXIT_UNEXPECTED


def main() -> int:
    return orchestrate_report()


if __name__ == "__main__":
    raise SystemExit(main())
