#!/usr/bin/env python
"""
UI utilities for Task Master
Provides leveled logging, progress bars, spinners, and colored output
"""

import traceback
from typing import Optional
from colorama import Fore, Style
from config import config

LOG_LEVELS = {
    "debug": 0,
    "info": 1,
    "warn": 2,
    "error": 3,
    "success": 4
}

LOG_STYLES = {
    "debug": (Fore.LIGHTBLACK_EX, "🔍"),
    "info": (Fore.BLUE, "ℹ️"),
    "warn": (Fore.YELLOW, "⚠️"),
    "error": (Fore.RED, "❌"),
    "success": (Fore.GREEN, "✅")
}


class ProgressBar:
    """Progress bar used while writing task files"""

    def __init__(self, total: int = 100, width: int = 40, desc: str = "Progress"):
        self.total = max(total, 1)
        self.width = width
        self.desc = desc
        self.current = 0
        self.enabled = config.get('ui.progress_bars', True) and not config.get('ui.quiet_mode', False)

    def set_progress(self, value: int):
        """Set absolute progress value"""
        if not self.enabled:
            return

        self.current = min(max(value, 0), self.total)
        self._render()

    def _render(self):
        percent = (self.current / self.total) * 100
        filled_width = int((self.current / self.total) * self.width)
        bar = '█' * filled_width + '░' * (self.width - filled_width)

        if percent < 30:
            color = Fore.RED
        elif percent < 70:
            color = Fore.YELLOW
        else:
            color = Fore.GREEN

        line = f"\r{self.desc}: {color}{bar}{Style.RESET_ALL} {percent:5.1f}% ({self.current}/{self.total})"
        print(line, end='', flush=True)

        if self.current >= self.total:
            print()  # New line when complete

    def finish(self):
        """Mark progress as complete"""
        if not self.enabled:
            return

        self.current = self.total
        self._render()


class EnhancedSpinner:
    """Spinner advanced by the caller, e.g. once per streamed chunk"""

    frames = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]

    def __init__(self, desc: str = "Processing"):
        self.desc = desc
        self.enabled = not config.get('ui.quiet_mode', False)
        self.idx = 0

    def __iter__(self):
        return self

    def __next__(self):
        if not self.enabled:
            return

        frame = self.frames[self.idx % len(self.frames)]
        color = Fore.CYAN if config.get('ui.colors_enabled', True) else ""
        reset = Style.RESET_ALL if config.get('ui.colors_enabled', True) else ""

        print(f"\r{color}{frame} {self.desc}...{reset}", end="", flush=True)
        self.idx += 1

    def stop(self):
        """Stop the spinner and clear the line"""
        if self.enabled:
            print("\r" + " " * (len(self.desc) + 10) + "\r", end="", flush=True)

    def __enter__(self):
        next(self)
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False


def colored_print(text: str, color: str = Fore.WHITE, style: str = Style.NORMAL):
    """Print colored text if colors are enabled"""
    if config.get('ui.colors_enabled', True) and not config.get('ui.quiet_mode', False):
        print(f"{color}{style}{text}{Style.RESET_ALL}")
    else:
        print(text)


def log(level: str, *parts):
    """Print a leveled log line; lines below the configured level are dropped"""
    configured = str(config.get('logging.level', 'info')).lower()
    if config.debug:
        configured = "debug"
    threshold = LOG_LEVELS.get(configured, LOG_LEVELS["info"])
    if LOG_LEVELS.get(level, LOG_LEVELS["info"]) < threshold:
        return

    color, icon = LOG_STYLES.get(level, (Fore.WHITE, ""))
    message = " ".join(str(part) for part in parts)
    colored_print(f"{icon} {message}", color)


def log_debug_error(error: BaseException, label: str = "Full error"):
    """Emit the technical detail of an error, only in debug mode"""
    if not config.debug:
        return
    details = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    log('debug', f"{label}:", details)


def display_header(title: str, subtitle: str = "", color: Optional[str] = None):
    """Display a formatted header"""
    if config.get('ui.quiet_mode', False):
        return

    width = max(len(title), len(subtitle)) + 4
    border = "═" * width
    border_color = color or Fore.CYAN

    colored_print(f"\n╔{border}╗", border_color)
    colored_print(f"║ {title.center(width-2)} ║", border_color)

    if subtitle:
        colored_print(f"║ {subtitle.center(width-2)} ║", Fore.YELLOW)

    colored_print(f"╚{border}╝\n", border_color)
