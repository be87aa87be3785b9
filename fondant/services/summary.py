from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from ..models.query import ScoredResult

"""Result projection and console rendering.

ResultProjection maps full-text hits onto the configured result columns
(heading + stored field key). The render_* helpers draw plain ASCII tables for
the command loop, and render_summary_line produces the SUMMARY line logged
after every load.
"""

__all__ = [
    "MAX_CELL_WIDTH",
    "ResultProjection",
    "render_table",
    "render_search_results",
    "render_record",
    "render_summary_line",
    "summary_message",
]

MAX_CELL_WIDTH = 128


@dataclass(frozen=True)
class ResultProjection:
    """Column headings paired positionally with stored field keys."""
    headings: tuple[str, ...] = ()
    keys: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if len(self.headings) != len(self.keys):
            raise ValueError("result headings and field keys must pair up")

    def project(self, result: ScoredResult) -> tuple[str, ...]:
        """One cell per configured key, truncated; every stored value if no keys are set.

        Keys are matched against stored field names case-insensitively; a key
        with no stored value yields "".
        """
        if not self.keys:
            return tuple(v[:MAX_CELL_WIDTH] for v in result.fields.values())
        lowered = {k.lower(): v for k, v in result.fields.items()}
        cells = []
        for key in self.keys:
            value = result.fields.get(key)
            if value is None:
                value = lowered.get(key.lower(), "")
            cells.append(value[:MAX_CELL_WIDTH])
        return tuple(cells)


def render_table(title: str, headings: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """ASCII table with an optional title bar and heading row."""
    columns = max([len(headings)] + [len(r) for r in rows]) if (headings or rows) else 0
    widths = [0] * columns
    for line in [headings, *rows]:
        for i, cell in enumerate(line):
            widths[i] = max(widths[i], len(str(cell)))

    def fmt(cells: Sequence[str]) -> str:
        padded = [str(cells[i]) if i < len(cells) else "" for i in range(columns)]
        return "| " + " | ".join(c.ljust(w) for c, w in zip(padded, widths)) + " |"

    inner = sum(widths) + 3 * columns - 1 if columns else len(title) + 2
    inner = max(inner, len(title) + 2)
    if columns and inner > sum(widths) + 3 * columns - 1:
        # widen the last column so the title fits
        widths[-1] += inner - (sum(widths) + 3 * columns - 1)
    border = "." + "-" * inner + "."
    lines = [border]
    if title:
        lines.append("|" + title.center(inner) + "|")
        lines.append("|" + "-" * inner + "|")
    if headings:
        lines.append(fmt(headings))
        lines.append("|" + "-" * inner + "|")
    lines.extend(fmt(r) for r in rows)
    lines.append("'" + "-" * inner + "'")
    return "\n".join(lines)


def render_search_results(term: str, projection: ResultProjection, results: Sequence[ScoredResult]) -> str:
    rows = [projection.project(r) for r in results]
    table = render_table(term.upper(), projection.headings, rows)
    return f"{table}\nFound {len(results)} matches."


def render_record(title: str, headers: Sequence[str], row: Sequence[str]) -> str:
    """Two-column (field, value) table for a single looked-up row."""
    pairs = [(h, row[i] if i < len(row) else "") for i, h in enumerate(headers)]
    return render_table(title, (), pairs)


def summary_message(version: int, sheets: int, records: int, elapsed_seconds: float) -> str:
    """Body of the SUMMARY line, without the label.

    Examples:
        >>> summary_message(2, 3, 120, 0.5)
        'version=2 sheets=3 records=120 elapsed_sec=0.5'
    """
    if elapsed_seconds == int(elapsed_seconds):
        elapsed_str = str(int(elapsed_seconds))
    elif elapsed_seconds < 0.01:
        elapsed_str = f"{elapsed_seconds:.6f}".rstrip("0").rstrip(".")
    else:
        elapsed_str = str(round(elapsed_seconds, 3))
    return f"version={version} sheets={sheets} records={records} elapsed_sec={elapsed_str}"


def render_summary_line(version: int, sheets: int, records: int, elapsed_seconds: float) -> str:
    """SUMMARY line for a completed load, as printed by the labeled formatter."""
    return "SUMMARY " + summary_message(version, sheets, records, elapsed_seconds)
