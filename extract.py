#!/usr/bin/env python3
"""
Snap Export Extractor CLI
Review the rows of a Snapchat memories export page and write snap_export.csv.
"""

__version__ = "1.0.0"

# Standard library imports
import argparse
import logging
import os
import sys
from typing import List, Optional

# Third-party imports
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

# Local imports
from snap_extractor import (
    INPUT_FILE,
    OUTPUT_DIR,
    Choice,
    Record,
    SnapExtractor,
    SnapExtractorError,
    parse_choice,
)

# Initialize rich console
console = Console()


def rich_confirm(record: Record, index: int, total: int) -> Choice:
    """Show a parsed row in a panel and block until the operator answers"""
    table = Table(show_header=False, box=None)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    # Page text is shown literally, never as rich markup
    table.add_row("Timestamp", escape(record.timestamp))
    table.add_row("Format", escape(record.format))
    table.add_row("Latitude", escape(record.latitude))
    table.add_row("Longitude", escape(record.longitude))
    table.add_row("Download URL", escape(record.download_url))

    console.print(Panel(table, title=f"Parsed row {index}/{total}", border_style="blue"))
    try:
        response: Optional[str] = Prompt.ask(
            "[bold]Enter[/bold] parse next row, [red]1[/red] cancel, [green]2[/green] parse remaining rows",
            console=console,
            default="",
            show_default=False,
        )
    except EOFError:
        response = None
    return parse_choice(response)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Extract download links from a Snapchat memories export page into a CSV file',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                        # Use defaults (memories_history.html, output/)
  %(prog)s --input export/memories_history.html   # Custom input page
  %(prog)s --auto                                 # Accept every row without prompting
  %(prog)s --verbose                              # Show detailed logs
  %(prog)s --quiet                                # Minimal output
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )
    parser.add_argument(
        '--input',
        default=INPUT_FILE,
        help=f'Path to the exported memories page (default: {INPUT_FILE})'
    )
    parser.add_argument(
        '--output',
        default=OUTPUT_DIR,
        help=f'Output directory for snap_export.csv (default: {OUTPUT_DIR})'
    )
    parser.add_argument(
        '--auto',
        action='store_true',
        help='Accept every parsed row without prompting'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Show detailed logs'
    )
    parser.add_argument(
        '--quiet',
        action='store_true',
        help='Minimal output (errors only)'
    )
    return parser


def print_summary(total: int, accepted: int, failed: int, output_path: Optional[str]) -> None:
    table = Table(title="Extraction Summary", show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan", width=20)
    table.add_column("Count", justify="right", style="green")

    table.add_row("Total rows", str(total))
    table.add_row("[OK] Accepted", f"[green]{accepted}[/green]")
    table.add_row("[FAIL] Failed", f"[red]{failed}[/red]")
    if output_path:
        table.add_row("Output", escape(output_path))

    console.print("\n")
    console.print(table)


def main(argv: Optional[List[str]] = None) -> int:
    """Main extraction function with CLI arguments"""
    args = build_parser().parse_args(argv)

    # Handle verbose/quiet modes
    verbose = args.verbose if not args.quiet else False
    if args.quiet:
        logging.getLogger().setLevel(logging.ERROR)
    elif args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    extractor = SnapExtractor(
        input_file=args.input,
        output_dir=args.output,
        confirm=rich_confirm,
        auto=args.auto,
        verbose=verbose,
    )

    if not os.path.exists(args.input):
        extractor._log("error", f"Error: {args.input} not found")
        return 1

    extractor._log("info", "=== Snap Export Extractor ===")
    extractor._log("info", f"Input page: {args.input}")
    extractor._log("info", f"Mode: {'auto' if args.auto else 'prompt'}")

    try:
        soup = extractor.load_document()
        result = extractor.extract(soup)
    except SnapExtractorError as e:
        extractor._log("error", f"Error: {e}")
        return 1

    if result.cancelled:
        if not args.quiet:
            console.print("[yellow]Cancelled - no CSV written[/yellow]")
        return 0

    output_path = extractor.save_to_csv()

    if not args.quiet:
        print_summary(
            result.state.total_rows,
            result.state.successes,
            result.state.failure_count,
            output_path,
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
