from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display with tqdm (TTY only).

Shows a single bar while data rows are mapped to documents. In non-TTY
environments (CI, pipes) no bar is created so logs stay free of control
sequences.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """Row progress bar; a no-op outside a TTY."""

    def __init__(self, total: int, *, description: str = "Mapping rows", unit: str = "row") -> None:
        self.total = total
        self.description = description
        self.done = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            # TMonitor スレッドを起動させない (ingest はスレッドを作らない)
            tqdm.monitor_interval = 0
            self.pbar = tqdm(
                total=total,
                desc=description,
                unit=unit,
                leave=False,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def advance(self, n: int = 1) -> None:
        self.done += n
        if self.pbar is not None:
            self.pbar.update(n)

    def set_postfix(self, **kwargs: Any) -> None:
        if self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
