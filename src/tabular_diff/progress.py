"""
Terminal progress display shown while comparisons run.

Provides:
- A progress bar for completed comparisons with elapsed time
- A recent activity log
- Cross-platform support (Unix and Windows 10+)
- Graceful fallback to logging for non-TTY environments
"""

import logging
import shutil
import sys
import threading
import time
from datetime import datetime
from typing import List, Optional, TextIO


def enable_windows_ansi_support() -> bool:
    """
    Enable ANSI escape code support on Windows 10+.

    Returns:
        True if successful or not on Windows, False if it failed.
    """
    if sys.platform != 'win32':
        return True

    try:
        import ctypes
        kernel32 = ctypes.windll.kernel32

        STD_ERROR_HANDLE = -12
        ENABLE_VIRTUAL_TERMINAL_PROCESSING = 0x0004

        handle = kernel32.GetStdHandle(STD_ERROR_HANDLE)
        mode = ctypes.c_ulong()
        if not kernel32.GetConsoleMode(handle, ctypes.byref(mode)):
            return False
        return bool(kernel32.SetConsoleMode(handle, mode.value | ENABLE_VIRTUAL_TERMINAL_PROCESSING))
    except (AttributeError, OSError):
        return False


_WINDOWS_ANSI_ENABLED = enable_windows_ansi_support()

SPINNER_FRAMES = "|/-\\"


class ProgressDisplay:
    """
    In-place progress display for one or more comparisons.

    In TTY mode a small box is redrawn every second from a background
    thread; otherwise progress is reported through logging at most every
    few seconds.

    Example:
        >>> progress = ProgressDisplay(total_diffs=3)
        >>> progress.initial_draw()
        >>> progress.log("baseline_a.csv done")
        >>> progress.increment_diffs()
        >>> progress.finish()

    Args:
        total_diffs: Number of comparisons expected
        title: Title shown in the box header
        max_log_lines: Maximum activity lines shown
        stream: Output stream (default: stderr)
    """

    def __init__(
        self,
        total_diffs: int,
        title: str = "tabular-diff",
        max_log_lines: int = 5,
        stream: Optional[TextIO] = None,
    ):
        self.total_diffs = total_diffs
        self.title = title
        self.max_log_lines = max_log_lines
        self.stream = stream if stream is not None else sys.stderr

        self.completed_diffs = 0
        self.errors = 0
        self.start_time = time.time()

        self.log_lines: List[str] = []
        self.lock = threading.Lock()

        if sys.platform == 'win32':
            self.is_tty = self.stream.isatty() and _WINDOWS_ANSI_ENABLED
        else:
            self.is_tty = self.stream.isatty()

        self.display_height = 0
        self._frame = 0

        # Fallback mode: throttle progress logs
        self._last_progress_log: float = 0.0
        self._progress_log_interval: float = 5.0

        self._timer_thread: Optional[threading.Thread] = None
        self._timer_stop = threading.Event()

        self.term_width = shutil.get_terminal_size(fallback=(80, 24)).columns

    def _timer_loop(self) -> None:
        while not self._timer_stop.wait(timeout=1.0):
            with self.lock:
                if not self._timer_stop.is_set():
                    self._draw()

    def _format_elapsed(self) -> str:
        """Format elapsed time as MM:SS."""
        mins, secs = divmod(int(time.time() - self.start_time), 60)
        return f"{mins:02d}:{secs:02d}"

    def _make_progress_bar(self, width: int = 25) -> str:
        if self.total_diffs == 0:
            pct, filled = 100.0, width
        else:
            pct = self.completed_diffs / self.total_diffs * 100
            filled = int(width * self.completed_diffs / self.total_diffs)
        bar = "█" * filled + "░" * (width - filled)
        return f"Diffs: [{bar}] {self.completed_diffs}/{self.total_diffs} ({pct:.1f}%)"

    def _clear_display(self) -> None:
        if self.display_height > 0:
            self.stream.write(f"\033[{self.display_height}A")
            for _ in range(self.display_height):
                self.stream.write("\033[2K\n")
            self.stream.write(f"\033[{self.display_height}A")

    def _draw(self) -> None:
        """Redraw the box (TTY mode only). Caller holds the lock."""
        if not self.is_tty:
            return

        content_width = self.term_width - 4
        spinner = SPINNER_FRAMES[self._frame % len(SPINNER_FRAMES)]
        self._frame += 1

        header = f"┌─ {self.title} ─ {spinner} Elapsed: {self._format_elapsed()} "
        lines = [header + "─" * max(0, self.term_width - len(header) - 1) + "┐"]
        lines.append(f"│ {self._make_progress_bar():<{content_width}} │")
        if self.errors > 0:
            lines.append(f"│ {f'⚠ Errors: {self.errors}':<{content_width}} │")

        recent = self.log_lines[-self.max_log_lines:]
        for entry in recent:
            lines.append(f"│ {entry[:content_width]:<{content_width}} │")
        lines.append(f"└{'─' * (self.term_width - 2)}┘")

        self._clear_display()
        for line in lines:
            self.stream.write(line[:self.term_width] + "\n")
        self.stream.flush()
        self.display_height = len(lines)

    def _maybe_log_progress(self) -> None:
        """In non-TTY mode, periodically log progress to avoid spam."""
        now = time.time()
        if now - self._last_progress_log >= self._progress_log_interval:
            self._last_progress_log = now
            logging.info(
                f"Progress [{self._format_elapsed()}]: "
                f"{self.completed_diffs}/{self.total_diffs} comparisons"
            )

    def _refresh(self) -> None:
        if self.is_tty:
            self._draw()
        else:
            self._maybe_log_progress()

    def log(self, message: str) -> None:
        """Add a message to the activity log (or to logging when not a TTY)."""
        with self.lock:
            self.log_lines.append(f"{datetime.now().strftime('%H:%M:%S')} {message}")
            if len(self.log_lines) > 100:
                self.log_lines = self.log_lines[-100:]

            if self.is_tty:
                self._draw()
            else:
                logging.info(message)

    def increment_diffs(self) -> None:
        with self.lock:
            self.completed_diffs += 1
            self._refresh()

    def increment_errors(self) -> None:
        with self.lock:
            self.errors += 1
            if self.is_tty:
                self._draw()

    def initial_draw(self) -> None:
        """Draw the first frame and start the elapsed-time timer."""
        with self.lock:
            if not self.is_tty:
                logging.info(f"Comparing {self.total_diffs} dataset pair(s)...")
                self._last_progress_log = time.time()
                return
            self._draw()

        self._timer_stop.clear()
        self._timer_thread = threading.Thread(target=self._timer_loop, daemon=True)
        self._timer_thread.start()

    def finish(self) -> None:
        """Stop the timer and clear the display."""
        self._timer_stop.set()
        if self._timer_thread is not None:
            self._timer_thread.join(timeout=2.0)
            self._timer_thread = None

        with self.lock:
            if self.is_tty:
                self._clear_display()
                self.stream.flush()
                self.display_height = 0
