"""Command-line interface for the event definition extractor.

This module provides a CLI tool for:
- Exporting the message tables of legacy event sources (registry based)
- Exporting the event definitions of manifest-based providers
"""

import argparse
import sys
import logging
from typing import List, Optional, Sequence

from .dumper import ExternalDumper
from .exceptions import (
    EvtDefsError,
    PlatformNotSupportedError,
    DumperNotFoundError,
    RegistryRootNotFoundError,
    ProviderEnumerationError,
    OutputWriteError,
)
from .pipeline import (
    export_provider_events,
    export_source_messages,
    extract_provider_events,
    extract_source_messages,
)
from .providers import WevtutilProviderEnumerator
from .registry import MESSAGE_FILE_VALUES, WinregStore
from .utils import (
    DEFAULT_PROVIDERS_FILENAME,
    DEFAULT_SOURCES_FILENAME,
    resolve_dumper,
    resolve_output_path,
)
from . import __version__


# Progress symbols
SYMBOL_SUCCESS = "[+]"
SYMBOL_FAILURE = "[X]"
SYMBOL_SKIPPED = "[-]"


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbose: If True, enable DEBUG level logging.
        quiet: If True, suppress all logging except errors.
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level, format="%(levelname)s: %(message)s", stream=sys.stderr
    )


def progress_bar(current: int, total: int, label: str, width: int = 40) -> None:
    """Display a simple progress bar.

    Args:
        current: Current item number (1-indexed).
        total: Total number of items.
        label: Name of the item being processed.
        width: Width of the progress bar in characters.
    """
    percent = (current / total) * 100 if total > 0 else 0
    filled = int(width * current / total) if total > 0 else 0
    bar = "=" * filled + "-" * (width - filled)

    sys.stderr.write(f"\r[{bar}] {percent:.1f}% ({current}/{total}) {label[:40]:<40}")
    sys.stderr.flush()

    if current == total:
        sys.stderr.write("\n")
        sys.stderr.flush()


def export_sources(
    output_file: Optional[str],
    dumper: Optional[str],
    value_names: Optional[List[str]],
    mui_language: Optional[str],
    include_last_block: bool,
    timeout: Optional[float],
    verbose: bool,
    quiet: bool,
) -> int:
    """Handle export of legacy event source messages.

    Args:
        output_file: Path of the TSV file to write (optional).
        dumper: Path or name of the message dump tool (optional).
        value_names: Registry value names to read (optional).
        mui_language: Language of MUI companion files to dump as well.
        include_last_block: Whether to export the message after the last header.
        timeout: Timeout in seconds per dumped file.
        verbose: Whether to show verbose output.
        quiet: Whether to suppress progress output.

    Returns:
        Exit code: 0 for success, 1 for failure, 2 if items were skipped.
    """
    logger = logging.getLogger(__name__)

    try:
        # The dump tool is checked before anything else runs
        external_dumper = ExternalDumper(resolve_dumper(dumper), timeout=timeout)
        output_path = resolve_output_path(output_file, DEFAULT_SOURCES_FILENAME)

        logger.info("Scanning legacy event sources...")
        summary = extract_source_messages(
            WinregStore(),
            external_dumper,
            value_names=value_names or MESSAGE_FILE_VALUES,
            include_trailing_block=include_last_block,
            mui_language=mui_language,
            progress_callback=None if quiet else progress_bar,
        )

        export_source_messages(output_path, summary)

    except DumperNotFoundError as e:
        print(f"{SYMBOL_FAILURE} Error: {e}", file=sys.stderr)
        logger.error("Message dump tool not found")
        return 1
    except PlatformNotSupportedError as e:
        print(f"{SYMBOL_FAILURE} Error: {e}", file=sys.stderr)
        logger.error("Platform not supported")
        return 1
    except RegistryRootNotFoundError as e:
        print(f"{SYMBOL_FAILURE} Error: {e}", file=sys.stderr)
        logger.error("Event log registry root missing")
        return 1
    except OutputWriteError as e:
        print(f"{SYMBOL_FAILURE} Error: {e}", file=sys.stderr)
        logger.error(f"Output write failed: {e}")
        return 1
    except EvtDefsError as e:
        print(f"{SYMBOL_FAILURE} Error: {e}", file=sys.stderr)
        logger.error(f"Export error: {e}")
        return 1
    except Exception as e:
        print(f"{SYMBOL_FAILURE} Unexpected error: {e}", file=sys.stderr)
        logger.exception("Unexpected error during source export")
        return 1

    print("\n" + "=" * 60)
    print("EVENT SOURCE SUMMARY")
    print("=" * 60)
    print(f"Event sources:           {summary.sources}")
    print(f"Resource files:          {summary.resource_files}")
    print(f"{SYMBOL_SUCCESS} Files dumped:        {summary.dumped_files}")
    print(f"{SYMBOL_FAILURE} Dump failures:       {len(summary.failed_dumps)}")
    print(f"{SYMBOL_SKIPPED} Missing files:       {len(summary.missing_files)}")
    print(f"{SYMBOL_SKIPPED} Malformed headers:   {summary.parse_errors}")
    print(f"Messages exported:       {len(summary.records)}")
    print(f"Total duration:          {summary.total_duration_seconds:.2f}s")
    print("=" * 60)
    print(f"{SYMBOL_SUCCESS} Wrote {output_path}")

    if summary.dropped_trailing_blocks and not include_last_block:
        print(
            f"{SYMBOL_SKIPPED} The last message of {summary.dropped_trailing_blocks} "
            "dump(s) was not exported; use --include-last-block to keep it"
        )

    if verbose:
        for path in summary.failed_dumps:
            print(f"  {SYMBOL_FAILURE} {path}")
        for path in summary.missing_files:
            print(f"  {SYMBOL_SKIPPED} {path}")

    return 2 if summary.has_errors else 0


def export_providers(
    output_file: Optional[str],
    pattern: str,
    timeout: Optional[float],
    verbose: bool,
    quiet: bool,
) -> int:
    """Handle export of manifest provider event definitions.

    Args:
        output_file: Path of the TSV file to write (optional).
        pattern: Glob pattern selecting providers by name.
        timeout: Timeout in seconds per wevtutil call.
        verbose: Whether to show verbose output.
        quiet: Whether to suppress progress output.

    Returns:
        Exit code: 0 for success, 1 for failure, 2 if providers were skipped.
    """
    logger = logging.getLogger(__name__)

    try:
        output_path = resolve_output_path(output_file, DEFAULT_PROVIDERS_FILENAME)

        logger.info(f"Enumerating providers matching {pattern!r}...")
        summary = extract_provider_events(
            WevtutilProviderEnumerator(timeout=timeout),
            pattern=pattern,
            progress_callback=None if quiet else progress_bar,
        )

        export_provider_events(output_path, summary)

    except PlatformNotSupportedError as e:
        print(f"{SYMBOL_FAILURE} Error: {e}", file=sys.stderr)
        logger.error("Platform not supported")
        return 1
    except ProviderEnumerationError as e:
        print(f"{SYMBOL_FAILURE} Error: {e}", file=sys.stderr)
        logger.error("Provider enumeration failed")
        return 1
    except OutputWriteError as e:
        print(f"{SYMBOL_FAILURE} Error: {e}", file=sys.stderr)
        logger.error(f"Output write failed: {e}")
        return 1
    except EvtDefsError as e:
        print(f"{SYMBOL_FAILURE} Error: {e}", file=sys.stderr)
        logger.error(f"Export error: {e}")
        return 1
    except Exception as e:
        print(f"{SYMBOL_FAILURE} Unexpected error: {e}", file=sys.stderr)
        logger.exception("Unexpected error during provider export")
        return 1

    print("\n" + "=" * 60)
    print("PROVIDER SUMMARY")
    print("=" * 60)
    print(f"Providers matched:       {summary.providers}")
    print(f"{SYMBOL_SUCCESS} Exported:            {summary.exported_providers}")
    print(f"{SYMBOL_SKIPPED} Without events:      {len(summary.empty_providers)}")
    print(f"{SYMBOL_FAILURE} Unreadable:          {len(summary.failed_providers)}")
    print(f"Events exported:         {len(summary.records)}")
    print(f"Total duration:          {summary.total_duration_seconds:.2f}s")
    print("=" * 60)
    print(f"{SYMBOL_SUCCESS} Wrote {output_path}")

    if verbose:
        for name in summary.failed_providers:
            print(f"  {SYMBOL_FAILURE} {name}")

    return 2 if summary.has_errors else 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the CLI tool.

    Args:
        argv: Optional argument list to parse instead of sys.argv.

    Returns:
        Exit code: 0 for success, 1 for failure, 2 for success with skipped items.
    """
    parser = argparse.ArgumentParser(
        prog="evt-defs",
        description="Export Windows event definitions to tab-separated files",
        epilog="""
Commands:
  sources     Export message tables of legacy event sources
  providers   Export event definitions of manifest-based providers

Examples:
  %(prog)s sources -o EventSourceMessages.tsv
  %(prog)s sources --dumper C:\\Tools\\MessageDump.exe --mui-language en-US
  %(prog)s providers --filter "Microsoft-Windows-Kernel*" -o Kernel.tsv
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # ========== SOURCES SUBCOMMAND ==========
    sources_parser = subparsers.add_parser(
        "sources",
        help="Export message tables of legacy event sources",
        description=(
            "Read legacy event source registrations from the registry, dump the "
            "message tables of their resource files and export them as TSV."
        ),
    )

    sources_parser.add_argument(
        "-o",
        "--output",
        metavar="FILE",
        help=f"Output file (default: $EVT_DEFS_OUTPUT_DIR/{DEFAULT_SOURCES_FILENAME})",
    )

    sources_parser.add_argument(
        "-d",
        "--dumper",
        metavar="PATH",
        help="Message dump tool (default: $EVT_DEFS_DUMPER or MessageDump.exe)",
    )

    sources_parser.add_argument(
        "--value-name",
        action="append",
        metavar="NAME",
        help="Registry value holding message files (repeatable, default: all three)",
    )

    sources_parser.add_argument(
        "--mui-language",
        metavar="LANG",
        help="Also dump <dir>\\LANG\\<file>.mui companions, e.g. en-US",
    )

    sources_parser.add_argument(
        "--include-last-block",
        action="store_true",
        help="Export the message after the last header of each dump",
    )

    # ========== PROVIDERS SUBCOMMAND ==========
    providers_parser = subparsers.add_parser(
        "providers",
        help="Export event definitions of manifest-based providers",
        description="Export provider event definitions read with wevtutil as TSV.",
    )

    providers_parser.add_argument(
        "-o",
        "--output",
        metavar="FILE",
        help=f"Output file (default: $EVT_DEFS_OUTPUT_DIR/{DEFAULT_PROVIDERS_FILENAME})",
    )

    providers_parser.add_argument(
        "--filter",
        default="*",
        metavar="PATTERN",
        help="Glob pattern selecting provider names (default: *)",
    )

    for sub in (sources_parser, providers_parser):
        sub.add_argument(
            "-t",
            "--timeout",
            type=float,
            default=None,
            metavar="SECONDS",
            help="Timeout per external tool call (default: none)",
        )
        sub.add_argument(
            "-v", "--verbose", action="store_true", help="Enable verbose output"
        )
        sub.add_argument(
            "-q", "--quiet", action="store_true", help="Suppress progress output"
        )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    verbose = args.verbose
    quiet = args.quiet

    if verbose and quiet:
        print("Error: Cannot use --verbose and --quiet together", file=sys.stderr)
        return 1

    if args.timeout is not None and args.timeout <= 0:
        print("Error: Timeout must be positive", file=sys.stderr)
        return 1

    setup_logging(verbose=verbose, quiet=quiet)

    if args.command == "sources":
        return export_sources(
            output_file=args.output,
            dumper=args.dumper,
            value_names=args.value_name,
            mui_language=args.mui_language,
            include_last_block=args.include_last_block,
            timeout=args.timeout,
            verbose=verbose,
            quiet=quiet,
        )

    return export_providers(
        output_file=args.output,
        pattern=args.filter,
        timeout=args.timeout,
        verbose=verbose,
        quiet=quiet,
    )


if __name__ == "__main__":
    sys.exit(main())
