from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.commit_result import ProgressEvent

"""Commit progress display with tqdm (TTY only).

The bar is driven by ProgressEvent.progress_percent, so it always shows the
share of records committed so far (0-100). In non-TTY environments (CI,
redirected output) no bar is created and events are only remembered.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """True if stdout is a TTY and a progress bar should be displayed."""
    return sys.stdout.isatty()


class ProgressTracker:
    """Progress bar for one commit, usable as a ProgressEvent callback."""

    def __init__(self, file_name: str, *, description: str = "Committing") -> None:
        self.file_name = file_name
        self.description = f"{description} ({file_name})" if file_name else description
        self.last_percent = 0.0
        self.events: list[ProgressEvent] = []

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=100,
                desc=self.description,
                unit="%",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
                bar_format="{l_bar}{bar}| {n:.0f}/{total_fmt}%",
            )
        else:
            self.pbar = None

    def __call__(self, event: ProgressEvent) -> None:
        self.update(event)

    def update(self, event: ProgressEvent) -> None:
        self.events.append(event)
        step = max(event.progress_percent - self.last_percent, 0.0)
        self.last_percent = max(event.progress_percent, self.last_percent)
        if self.enabled and self.pbar is not None:
            self.pbar.update(step)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
