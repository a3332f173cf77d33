"""
Progress Display Module

Show color-coded, stage-by-stage progress while the clone pipeline runs.

Security Requirements:
- No credential exposure in output
- Safe output formatting
"""

import logging
import sys
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import click

logger = logging.getLogger(__name__)


class ProgressStage(Enum):
    """Progress stage indicators."""

    STARTED = "started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    WARNING = "warning"


@dataclass
class ProgressUpdate:
    """Progress update information."""

    stage: ProgressStage
    message: str
    timestamp: float
    operation: str


class ProgressDisplay:
    """
    Progress display for long pipeline operations.

    Features:
    - Stage-based updates with symbols and colors
    - Elapsed time per operation
    - Update history for summaries and tests
    """

    SYMBOLS = {
        ProgressStage.STARTED: "►",
        ProgressStage.IN_PROGRESS: "...",
        ProgressStage.COMPLETED: "✓",
        ProgressStage.FAILED: "✗",
        ProgressStage.WARNING: "⚠",
    }

    ASCII_SYMBOLS = {
        ProgressStage.STARTED: ">",
        ProgressStage.IN_PROGRESS: "...",
        ProgressStage.COMPLETED: "OK",
        ProgressStage.FAILED: "FAIL",
        ProgressStage.WARNING: "WARN",
    }

    COLORS = {
        ProgressStage.STARTED: "cyan",
        ProgressStage.IN_PROGRESS: None,
        ProgressStage.COMPLETED: "green",
        ProgressStage.FAILED: "red",
        ProgressStage.WARNING: "yellow",
    }

    def __init__(self, use_unicode: bool = True, output_file=None, color: bool | None = None):
        """
        Initialize progress display.

        Args:
            use_unicode: Use Unicode symbols (True) or ASCII (False)
            output_file: Output file object (default: sys.stdout)
            color: Force colors on/off (None lets click decide from the stream)
        """
        self.use_unicode = use_unicode
        self.output_file = output_file or sys.stdout
        self.color = color
        self.current_operation: Optional[str] = None
        self.start_time: Optional[float] = None
        self.updates: list[ProgressUpdate] = []

    def start_operation(self, name: str) -> None:
        """Begin showing progress for an operation."""
        self.current_operation = name
        self.start_time = time.time()
        self.update(f"{name}...", ProgressStage.STARTED)

    def update(self, message: str, stage: ProgressStage = ProgressStage.IN_PROGRESS) -> None:
        """Record and print an update."""
        update = ProgressUpdate(
            stage=stage,
            message=message,
            timestamp=time.time(),
            operation=self.current_operation or "unknown",
        )
        self.updates.append(update)
        logger.debug("[%s] %s", stage.value, message)
        self._print(update)

    def warn(self, message: str) -> None:
        self.update(message, ProgressStage.WARNING)

    def complete(self, success: bool = True, message: Optional[str] = None) -> None:
        """Mark the current operation complete."""
        if success:
            stage = ProgressStage.COMPLETED
            default_message = f"{self.current_operation} completed"
        else:
            stage = ProgressStage.FAILED
            default_message = f"{self.current_operation} failed"

        final_message = message or default_message
        if self.start_time:
            elapsed = time.time() - self.start_time
            final_message += f" ({self._format_duration(elapsed)})"

        self.update(final_message, stage)
        self.current_operation = None
        self.start_time = None

    def _format_duration(self, seconds: float) -> str:
        """Format duration, e.g. "2m 30s"."""
        if seconds < 60:
            return f"{seconds:.1f}s"
        if seconds < 3600:
            return f"{int(seconds // 60)}m {int(seconds % 60)}s"
        return f"{int(seconds // 3600)}h {int((seconds % 3600) // 60)}m"

    def _print(self, update: ProgressUpdate) -> None:
        symbols = self.SYMBOLS if self.use_unicode else self.ASCII_SYMBOLS
        line = f"{symbols.get(update.stage, '')} {update.message}"
        click.secho(line, fg=self.COLORS.get(update.stage), file=self.output_file, color=self.color)

    def get_updates(self) -> list[ProgressUpdate]:
        """Get all progress updates recorded."""
        return self.updates.copy()
