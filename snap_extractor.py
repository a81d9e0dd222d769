#!/usr/bin/env python3
"""
Snap Export Extractor
Reads the table of a Snapchat "Memories" export page and turns every row into
a download record, then writes the accepted records to a quoted CSV file for
a batch downloader.
"""

# Standard library imports
import csv
import io
import logging
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Union

# Third-party imports
try:
    from bs4 import BeautifulSoup, Tag
except ImportError:
    print("ERROR: BeautifulSoup4 is required. Install with: pip install beautifulsoup4")
    raise

# Configuration constants
INPUT_FILE = "memories_history.html"
OUTPUT_DIR = "output"
OUTPUT_FILENAME = "snap_export.csv"
CONTENT_TYPE = "text/csv"
CSV_HEADER = ["timestamp_utc", "format", "latitude", "longitude", "download_url"]
EXPECTED_CELL_COUNT = 4
PROGRESS_STEP = 5  # percent between progress messages in auto mode

# Two signed decimals separated by a comma; a short label such as "Long:" may
# sit between the comma and the second number.
LOCATION_PATTERN = re.compile(
    r"([-+]?(?:\d+(?:\.\d*)?|\.\d+)),\s*(?:[A-Za-z]+\s*:\s*)?([-+]?(?:\d+(?:\.\d*)?|\.\d+))"
)
DOWNLOAD_URL_PATTERN = re.compile(r"'(https://[^']+)'")

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


class SnapExtractorError(Exception):
    """Base class for errors that stop an extraction run"""


class TableNotFoundError(SnapExtractorError):
    """The loaded document has no table to read rows from"""


class ParseFailure(Enum):
    """Reasons a row is rejected by the parser"""

    UNEXPECTED_CELL_COUNT = "unexpected number of cells"
    LOCATION_PARSE_ERROR = "could not parse latitude and longitude"
    MISSING_HANDLER_ATTRIBUTE = "no onclick attribute on the download link"
    URL_PARSE_ERROR = "could not parse download URL from onclick attribute"


class RowParseError(Exception):
    """A single row failed validation; the run skips it and moves on"""

    def __init__(
        self,
        reason: ParseFailure,
        index: int,
        raw: str,
        detail: str = "",
        total: Optional[int] = None,
    ):
        self.reason = reason
        self.index = index
        self.raw = raw
        self.detail = detail
        self.total = total
        position = f"{index}/{total}" if total is not None else str(index)
        message = f"Row {position}: {reason.value}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class Mode(Enum):
    PROMPT = "prompt"
    AUTO = "auto"


class Choice(Enum):
    """Operator answer to a row confirmation"""

    ACCEPT = "accept"
    CANCEL = "cancel"
    ACCEPT_ALL = "accept_all"


@dataclass
class Record:
    """One download entry, every field kept as the text found on the page"""

    timestamp: str
    format: str
    latitude: str
    longitude: str
    download_url: str

    def as_row(self) -> List[str]:
        return [self.timestamp, self.format, self.latitude, self.longitude, self.download_url]


@dataclass
class ExtractionState:
    """Counters and mode for one run"""

    total_rows: int
    mode: Mode = Mode.PROMPT
    processed_count: int = 0  # accepted records
    failure_count: int = 0  # rows rejected by the parser
    current_index: int = -1

    @property
    def rows_processed(self) -> int:
        """Rows that reached a verdict: accepted or rejected"""
        return self.processed_count + self.failure_count

    @property
    def successes(self) -> int:
        return self.rows_processed - self.failure_count


@dataclass
class ExtractionResult:
    records: List[Record]
    state: ExtractionState
    cancelled: bool = False
    csv_content: Optional[str] = None
    failures: List[RowParseError] = field(default_factory=list)


ConfirmCallback = Callable[[Record, int, int], Choice]


# ---------------------------------------------------------------------------
# Table reading and row parsing
# ---------------------------------------------------------------------------


def parse_document(markup: Union[str, bytes]) -> BeautifulSoup:
    """Parse export page markup into a soup"""
    return BeautifulSoup(markup, 'html.parser')


def read_table_rows(soup: BeautifulSoup) -> List[Tag]:
    """Return the data rows of the page's table, header row excluded

    Raises:
        TableNotFoundError: the document contains no <table>
    """
    table = soup.find('table')
    if not isinstance(table, Tag):
        raise TableNotFoundError("No table found in document")

    rows = [row for row in table.find_all('tr') if isinstance(row, Tag)]
    return rows[1:]


def parse_location(text: str) -> Optional[tuple]:
    """Return (latitude, longitude) text from a location cell, or None"""
    match = LOCATION_PATTERN.search(text)
    if not match:
        return None
    return match.group(1), match.group(2)


def extract_download_url(handler: str) -> Optional[str]:
    """Pull the single-quoted https:// URL out of an inline onclick handler

    The export page wires every download link as something like
    ``downloadMemories('https://...', this, true)``; the first quoted https
    string is the media URL.
    """
    match = DOWNLOAD_URL_PATTERN.search(handler)
    return match.group(1) if match else None


def parse_row(row: Union[Tag, Sequence[Tag]], index: int, total: int) -> Record:
    """Convert one table row into a Record

    Args:
        row: the <tr> tag, or its cells already split out
        index: 0-based row index (header excluded)
        total: number of data rows, used in diagnostics

    Raises:
        RowParseError: with the first validation stage that failed
    """
    if isinstance(row, Tag):
        cells = [cell for cell in row.find_all('td') if isinstance(cell, Tag)]
        raw_row = str(row)
    else:
        cells = list(row)
        raw_row = "".join(str(cell) for cell in cells)

    if len(cells) != EXPECTED_CELL_COUNT:
        raise RowParseError(
            ParseFailure.UNEXPECTED_CELL_COUNT,
            index,
            raw_row,
            f"got {len(cells)}, expected {EXPECTED_CELL_COUNT}",
            total=total,
        )

    timestamp = cells[0].get_text().strip()
    media_format = cells[1].get_text().strip()

    location_text = cells[2].get_text()
    location = parse_location(location_text)
    if location is None:
        raise RowParseError(ParseFailure.LOCATION_PARSE_ERROR, index, location_text.strip(), total=total)
    latitude, longitude = location

    link = cells[3].find('a')
    handler = link.get('onclick') if isinstance(link, Tag) else None
    if not handler:
        raise RowParseError(ParseFailure.MISSING_HANDLER_ATTRIBUTE, index, cells[3].decode_contents(), total=total)

    download_url = extract_download_url(str(handler))
    if download_url is None:
        raise RowParseError(ParseFailure.URL_PARSE_ERROR, index, str(handler), total=total)

    return Record(
        timestamp=timestamp,
        format=media_format,
        latitude=latitude,
        longitude=longitude,
        download_url=download_url,
    )


# ---------------------------------------------------------------------------
# Operator interaction and progress
# ---------------------------------------------------------------------------


def parse_choice(response: Optional[str]) -> Choice:
    """Map a raw prompt answer to a Choice

    Empty input (or a dismissed prompt) accepts the row. "1"/"cancel" stops the
    run, "2"/"auto" accepts this row and every row after it.
    """
    if response is None:
        return Choice.ACCEPT
    answer = response.strip().lower()
    if answer in ("1", "cancel", "c"):
        return Choice.CANCEL
    if answer in ("2", "auto", "a"):
        return Choice.ACCEPT_ALL
    return Choice.ACCEPT


def format_prompt_message(record: Record, index: int, total: int) -> str:
    """Confirmation text shown for one parsed row"""
    return (
        f"Parsed row {index}/{total}:\n\n"
        f"Timestamp: {record.timestamp}\n"
        f"Format: {record.format}\n"
        f"Latitude: {record.latitude}\n"
        f"Longitude: {record.longitude}\n"
        f"Download URL: {record.download_url}\n\n"
        "Enter your choice:\n"
        "  * Parse next row (Enter)\n"
        "  * Cancel (1)\n"
        "  * Parse remaining rows (2)"
    )


def input_confirm(record: Record, index: int, total: int) -> Choice:
    """Blocking terminal confirmation using input()"""
    try:
        response: Optional[str] = input(format_prompt_message(record, index, total) + "\n> ")
    except EOFError:
        response = None
    return parse_choice(response)


def progress_threshold(accepted: int, total: int, step: int = PROGRESS_STEP) -> Optional[int]:
    """Return the percentage reached if this acceptance crossed a new step

    Compares floor(progress / step) for ``accepted`` and ``accepted - 1``.
    """
    if total <= 0 or accepted <= 0:
        return None
    current = (accepted * 100) // (total * step)
    previous = ((accepted - 1) * 100) // (total * step)
    if current > previous:
        return current * step
    return None


# ---------------------------------------------------------------------------
# CSV output
# ---------------------------------------------------------------------------


def records_to_csv(records: Sequence[Record]) -> str:
    """Render the header plus one quoted line per record

    Every field is quoted and embedded quotes are doubled. Lines are joined
    with a bare newline and there is no trailing newline.
    """
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for record in records:
        writer.writerow(record.as_row())
    return output.getvalue()[:-1]


class DiskSink:
    """Output sink that writes the artifact into a directory"""

    def __init__(self, output_dir: str = OUTPUT_DIR):
        self.output_dir = output_dir

    def save(self, filename: str, content_type: str, data: bytes) -> str:
        Path(self.output_dir).mkdir(parents=True, exist_ok=True)
        output_path = os.path.join(self.output_dir, filename)
        with open(output_path, 'wb') as f:
            f.write(data)
        logger.debug(f"Wrote {len(data)} bytes ({content_type}) to {output_path}")
        return output_path


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class SnapExtractor:
    """Runs the row review over an export page and produces snap_export.csv"""

    def __init__(
        self,
        input_file: str = INPUT_FILE,
        output_dir: str = OUTPUT_DIR,
        confirm: Optional[ConfirmCallback] = None,
        auto: bool = False,
        callback: Optional[Callable[[str, str], None]] = None,
        verbose: bool = True,
    ):
        self.input_file = input_file
        self.output_dir = output_dir
        self.confirm = confirm or input_confirm  # Blocking per-row confirmation
        self.auto = auto  # Start in auto mode, never prompt
        self.callback = callback  # Optional callback for UI updates (level, message)
        self.verbose = verbose
        self.extracted_data: List[Record] = []
        self.cancelled = False  # Last extract() was cancelled; nothing may be saved

    def _log(self, level: str, message: str) -> None:
        """Log message to logger and optionally call callback for UI updates"""
        log_level = getattr(logging, level.upper(), logging.INFO)
        logger.log(log_level, message)

        if self.callback:
            self.callback(level, message)
        elif self.verbose:
            # Handle Unicode encoding issues on Windows console (cp1252)
            try:
                print(message)
            except UnicodeEncodeError:
                print(message.encode('ascii', errors='replace').decode('ascii'))

    def load_document(self, path: Optional[str] = None) -> BeautifulSoup:
        """Read and parse the export page from disk

        The raw bytes go to BeautifulSoup so it can detect the page encoding.
        """
        path = path or self.input_file
        with open(path, 'rb') as f:
            soup = parse_document(f.read())
        self._log("debug", f"Loaded {path}")
        return soup

    def _report_failure(self, error: RowParseError, state: ExtractionState) -> None:
        state.failure_count += 1
        self._log("error", f"[FAIL] {error}: {error.raw}")

    def _report_progress(self, state: ExtractionState) -> None:
        percent = progress_threshold(state.processed_count, state.total_rows)
        if percent is not None:
            self._log(
                "info",
                f"Progress: {percent}% ({state.processed_count}/{state.total_rows} rows)",
            )

    def _log_summary(self, state: ExtractionState) -> None:
        self._log("info", f"Parsing complete. Total rows processed: {state.rows_processed}/{state.total_rows}")
        self._log("info", f"Successes: {state.successes}")
        self._log("info", f"Failures: {state.failure_count}")

    def extract(self, soup: BeautifulSoup) -> ExtractionResult:
        """Parse, review and collect every row of the document's table

        Row-level failures are logged and counted. A CANCEL answer ends the run
        with ``cancelled=True`` and no records.

        Raises:
            TableNotFoundError: the document has no table
        """
        rows = read_table_rows(soup)
        self.extracted_data = []
        self.cancelled = False
        state = ExtractionState(total_rows=len(rows), mode=Mode.AUTO if self.auto else Mode.PROMPT)
        accepted: List[Record] = []
        failures: List[RowParseError] = []

        self._log("info", f"Found {state.total_rows} rows to parse")

        for index, row in enumerate(rows):
            state.current_index = index
            try:
                record = parse_row(row, index, state.total_rows)
            except RowParseError as e:
                failures.append(e)
                self._report_failure(e, state)
                continue

            auto_accepted = state.mode is Mode.AUTO
            if not auto_accepted:
                choice = self.confirm(record, index, state.total_rows)
                if choice is Choice.CANCEL:
                    self._log("warning", "Operation cancelled by user.")
                    self.cancelled = True
                    return ExtractionResult(records=[], state=state, cancelled=True, failures=failures)
                if choice is Choice.ACCEPT_ALL:
                    state.mode = Mode.AUTO
                    self._log("info", f"Parsing remaining {state.total_rows - state.processed_count} rows...")

            accepted.append(record)
            state.processed_count += 1
            self._log("debug", f"[OK] Row {index}: {record.timestamp} {record.format}")

            if auto_accepted:
                self._report_progress(state)

        self._log_summary(state)
        self.extracted_data = accepted
        return ExtractionResult(
            records=accepted,
            state=state,
            csv_content=records_to_csv(accepted),
            failures=failures,
        )

    def get_csv_content(self) -> str:
        """Generate and return CSV content as string"""
        return records_to_csv(self.extracted_data)

    def save_to_csv(self, sink: Any = None, filename: str = OUTPUT_FILENAME) -> Any:
        """Hand the CSV artifact to an output sink (disk by default)

        Returns None without calling the sink when the last run was cancelled.
        """
        if self.cancelled:
            self._log("warning", "Run was cancelled - no CSV written")
            return None
        if sink is None:
            sink = DiskSink(self.output_dir)
        data = self.get_csv_content().encode('utf-8')
        location = sink.save(filename, CONTENT_TYPE, data)
        self._log("info", f"CSV saved to: {location or filename}")
        return location

    def run(self, soup: Optional[BeautifulSoup] = None, sink: Any = None) -> ExtractionResult:
        """Load, review and export in one go

        The sink is called once, only when the operator did not cancel.
        """
        if soup is None:
            soup = self.load_document()
        result = self.extract(soup)
        if not result.cancelled:
            self.save_to_csv(sink)
        return result
