"""Shared fixtures for the extractor tests.

Pages are built in memory with the same markup shape as a real
memories_history.html export.
"""

from __future__ import annotations

from typing import Callable, List, Optional

import pytest

from snap_extractor import Choice

HEADER_ROW = "<tr><th>Date</th><th>Media Type</th><th>Location</th><th></th></tr>"


def build_row(
    timestamp: str = "2023-01-01 00:00 UTC",
    media_format: str = "Image",
    location: str = "Latitude, Longitude: 34.123, -118.456",
    url: str = "https://example.com/a",
    onclick: Optional[str] = None,
) -> str:
    if onclick is None:
        onclick = f"downloadMemories('{url}', this, true); return false;"
    return (
        f"<tr><td>{timestamp}</td><td>{media_format}</td><td>{location}</td>"
        f'<td><a href="#" onclick="{onclick}">Download</a></td></tr>'
    )


def build_page(rows: List[str]) -> str:
    return (
        "<html><body><h1>Snap History</h1><table>"
        + HEADER_ROW
        + "".join(rows)
        + "</table></body></html>"
    )


class RecordingSink:
    """Output sink that keeps every save call in memory"""

    def __init__(self):
        self.saved: List[tuple] = []

    def save(self, filename: str, content_type: str, data: bytes) -> str:
        self.saved.append((filename, content_type, data))
        return filename


class ScriptedConfirm:
    """Confirm callable answering from a fixed script, ACCEPT once exhausted"""

    def __init__(self, answers: Optional[List[Choice]] = None):
        self.answers = list(answers or [])
        self.prompted: List[int] = []

    def __call__(self, record, index: int, total: int) -> Choice:
        self.prompted.append(index)
        if self.answers:
            return self.answers.pop(0)
        return Choice.ACCEPT


@pytest.fixture
def make_row() -> Callable[..., str]:
    return build_row


@pytest.fixture
def make_page() -> Callable[[List[str]], str]:
    return build_page


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def scripted_confirm() -> Callable[..., ScriptedConfirm]:
    return ScriptedConfirm


@pytest.fixture
def export_page(tmp_path):
    """Write a three-row export page to disk and return its path."""
    path = tmp_path / "memories_history.html"
    rows = [
        build_row(timestamp="2023-01-01 00:00 UTC", url="https://example.com/a"),
        build_row(timestamp="2023-01-02 00:00 UTC", media_format="Video", url="https://example.com/b"),
        "<tr><td>broken</td></tr>",
    ]
    path.write_text(build_page(rows), encoding="utf-8")
    return path
