from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display with tqdm (TTY only).

Shown while a load materializes sheets. In non-TTY environments (CI, pipes,
one-shot queries redirected to a file) the bar is disabled so no ANSI control
sequences leak into the output.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """True if stdout is a TTY and progress should be displayed."""
    return sys.stdout.isatty()


class ProgressTracker:
    """Progress tracker over the sheets of one load."""

    def __init__(self, total_sheets: int, *, description: str = "Loading sheets") -> None:
        self.total_sheets = total_sheets
        self.description = description
        self.current_sheet = 0
        self.total_records = 0

        self.enabled = is_tty_enabled() and total_sheets > 0
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_sheets,
                desc=description,
                unit="sheet",
                disable=False,
                leave=False,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def start_sheet(self, sheet_name: str) -> None:
        self.current_sheet += 1
        if self.enabled and self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({sheet_name})")

    def finish_sheet(self, records: int = 0) -> None:
        self.total_records += records
        if self.enabled and self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_postfix(records=self.total_records)
            self.pbar.set_description(self.description)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
