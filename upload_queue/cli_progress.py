"""Console rendering and progress helpers for the upload-queue CLI."""
from __future__ import annotations

import time
from typing import Any, Dict, Optional

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn
from rich.table import Table

from .models import FileDescriptor, QueueCounts, UploadTask

console = Console()


def _echo(message: str) -> None:
    console.print(message)


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]upload-queue[/bold green]",
        subtitle="[dim]upload queue CLI[/dim]",
        border_style="blue",
    )
    console.print(panel)


class QueueProgressDisplay:
    """Event-based console display for the upload queue."""

    def __init__(self):
        self._active_tasks: Dict[str, TaskID] = {}
        self._overall_task_id: Optional[TaskID] = None
        self._live: Optional[Live] = None

        self._meta_progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold cyan]{task.fields[label]}", justify="left"),
            BarColumn(bar_width=28),
            TextColumn("{task.completed}/{task.total}"),
            TextColumn("[dim]{task.fields[detail]}", justify="left"),
            expand=False,
            console=console,
        )
        self._file_progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold green]{task.fields[label]}", justify="left"),
            BarColumn(bar_width=42),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TextColumn("[dim]{task.fields[size]}"),
            expand=False,
            console=console,
        )

    def _emit_timeline(self, status: str, task: UploadTask, error: Optional[str] = None) -> None:
        stamp = time.strftime("%H:%M:%S")
        error_label = f" cause={error}" if error else ""
        palette = {
            "DONE": "green",
            "FAIL": "red",
        }
        color = palette.get(status, "white")
        _echo(
            f"[dim]{stamp}[/dim] [{color}]{status:<4}[/{color}] "
            f"{task.category.value}: {task.name} {task.size_label}{error_label}"
        )

    def _start_live(self) -> None:
        if self._live is not None:
            return
        self._live = Live(
            Group(self._meta_progress, self._file_progress),
            console=console,
            refresh_per_second=8,
            vertical_overflow="visible",
        )
        self._live.start()
        self._overall_task_id = self._meta_progress.add_task(
            "overall",
            label="Overall",
            total=1,
            completed=0,
            detail="waiting...",
        )

    def close(self) -> None:
        """Stop the live display. Safe to call more than once."""
        if self._live is None:
            return
        self._live.stop()
        self._live = None

    def _drop_file_task(self, task: UploadTask) -> None:
        task_id = self._active_tasks.pop(task.id, None)
        if task_id is not None:
            self._file_progress.remove_task(task_id)

    def on_rejected(self, file: FileDescriptor) -> None:
        _echo(f"[yellow]Skipped:[/yellow] {file.name} (type not accepted)")

    def on_task_start(self, task: UploadTask) -> None:
        self._start_live()
        self._drop_file_task(task)
        self._active_tasks[task.id] = self._file_progress.add_task(
            "upload",
            label=task.name[:60],
            size=task.size_label,
            total=100,
            completed=task.progress,
        )

    def on_task_progress(self, task: UploadTask) -> None:
        task_id = self._active_tasks.get(task.id)
        if task_id is not None:
            self._file_progress.update(task_id, completed=task.progress)

    def on_task_complete(self, task: UploadTask) -> None:
        self._drop_file_task(task)
        self._emit_timeline("DONE", task)

    def on_task_fail(self, task: UploadTask) -> None:
        self._drop_file_task(task)
        self._emit_timeline("FAIL", task, error=task.error)

    def on_change(self, counts: QueueCounts) -> None:
        if self._overall_task_id is None:
            return
        finished = counts.complete + counts.error
        total = max(counts.total, 1)
        self._meta_progress.update(
            self._overall_task_id,
            completed=min(finished, total),
            total=total,
            detail=counts.summary(),
        )

    def on_retry_round(self, round_no: int, failed: int) -> None:
        _echo(f"[blue]Retry round {round_no}:[/blue] requeueing {failed} failed file(s)")

    def on_finish(self, counts: QueueCounts) -> None:
        self.close()
        _echo(f"[bold]Finished[/bold] {counts.summary()}")
