"""Rich-powered console views for uploads, validation and processing jobs."""

from __future__ import annotations

from typing import Optional

from rich import box
from rich.console import Console, Group
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table
from rich.text import Text

from ..api.models import ProcessingJob, UploadStatusResponse
from ..services.progress import describe_job_status, format_duration, format_file_size
from ..services.validation import VideoValidationResult
from ..transfer.chunked import UploadRecord


STATUS_STYLES = {
    "uploading": "cyan",
    "queued": "yellow",
    "processing": "yellow",
    "transcoding": "yellow",
    "transcribing": "yellow",
    "tagging": "yellow",
    "complete": "green",
    "error": "red",
}


class UploadProgressView:
    """Live progress bar fed by :class:`ChunkedUploadManager` callbacks."""

    def __init__(self, label: str, *, console: Optional[Console] = None) -> None:
        self._label = label
        self._console = console or Console()
        self._progress = Progress(
            TextColumn("[bold cyan]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TextColumn("{task.fields[chunks]}", style="dim"),
            TimeElapsedColumn(),
            console=self._console,
            transient=False,
        )
        self._task: Optional[TaskID] = None

    def __enter__(self) -> "UploadProgressView":
        self._progress.start()
        self._task = self._progress.add_task(self._label, total=100, chunks="")
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._progress.stop()

    def on_progress(self, record: UploadRecord) -> None:
        if self._task is None:
            return
        chunk_text = f"{record.uploaded_chunks}/{len(record.chunks)} chunks"
        description = self._label
        if record.status == "error":
            description = f"[red]{self._label} ({record.error or 'failed'})"
        self._progress.update(
            self._task,
            completed=record.progress,
            chunks=chunk_text,
            description=description,
        )


def _status_text(status: str) -> Text:
    return Text(status, style=f"bold {STATUS_STYLES.get(status, 'white')}")


def render_validation(
    result: VideoValidationResult, *, title: str, console: Optional[Console] = None
) -> None:
    console = console or Console()

    details = Table.grid(expand=True, padding=(0, 1))
    details.add_column(style="dim")
    details.add_column(justify="right", style="bold")
    if result.file_size is not None:
        details.add_row("Size", format_file_size(result.file_size))
    if result.duration is not None:
        details.add_row("Duration", format_duration(result.duration))
    if result.resolution:
        details.add_row("Resolution", result.resolution)
    if result.codec:
        details.add_row("Codec", result.codec)

    messages = Text()
    for error in result.errors:
        messages.append(f"✗ {error}\n", style="red")
    for warning in result.warnings:
        messages.append(f"! {warning}\n", style="yellow")
    if not result.errors and not result.warnings:
        messages.append("✓ Ready to upload\n", style="green")

    console.print(
        Panel(
            Group(details, messages),
            title=title,
            border_style="green" if result.is_valid else "red",
            box=box.ROUNDED,
        )
    )


def render_job(job: ProcessingJob, *, console: Optional[Console] = None) -> None:
    console = console or Console()

    table = Table.grid(expand=True, padding=(0, 1))
    table.add_column(style="dim")
    table.add_column(justify="right")
    table.add_row("Status", _status_text(job.status))
    table.add_row("Progress", f"{round(job.progress)}%")
    if job.estimated_completion:
        table.add_row("Estimated completion", job.estimated_completion)

    console.print(
        Panel(
            Group(Text(describe_job_status(job)), table),
            title=f"Processing job {job.id or ''}".strip(),
            border_style=STATUS_STYLES.get(job.status, "white"),
            box=box.ROUNDED,
        )
    )


def render_upload_status(
    upload_id: str, status: UploadStatusResponse, *, console: Optional[Console] = None
) -> None:
    console = console or Console()

    table = Table.grid(expand=True, padding=(0, 1))
    table.add_column(style="dim")
    table.add_column(justify="right")
    table.add_row("Status", _status_text(status.status))
    table.add_row("Progress", f"{round(status.progress)}%")
    if status.reel_id:
        table.add_row("Reel", status.reel_id)
    if status.error:
        table.add_row("Error", Text(status.error, style="red"))

    console.print(
        Panel(
            table,
            title=f"Upload {upload_id}",
            border_style=STATUS_STYLES.get(status.status, "white"),
            box=box.ROUNDED,
        )
    )


__all__ = [
    "UploadProgressView",
    "render_job",
    "render_upload_status",
    "render_validation",
]
