from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display for dataset fetching (TTY only).

Fetching uploads is the only slow step of a run (network or database round
trips, spreadsheet parsing). A single tqdm bar counts fetched datasets; in
non-TTY environments (CI, redirected output) no bar is created so logs stay
free of control sequences.
"""

__all__ = [
    "FetchProgress",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """True when stdout is a TTY and a progress bar should be shown."""
    return sys.stdout.isatty()


class FetchProgress:
    """Progress bar over the datasets fetched for one reconciliation run."""

    def __init__(self, total: int, *, description: str = "Fetching datasets") -> None:
        self.total = total
        self.description = description
        self.current = 0
        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total,
                desc=description,
                unit="dataset",
                leave=False,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def start(self, name: str) -> None:
        """Show the dataset currently being fetched."""
        self.current += 1
        if self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({name})")

    def finish(self, ok: bool = True) -> None:
        if self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_description(self.description)
            if not ok:
                self.pbar.set_postfix(last="failed")

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> FetchProgress:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
