"""Entry-point for the Training Reels upload client."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional

import httpx
import typer
from pydantic import ValidationError
from rich.console import Console

from training_reels.api import ApiClient, ApiError, AuthenticationError, ReelsApi, TranscodingApi, UploadApi
from training_reels.api.models import CreateReelRequest
from training_reels.bootstrap import initialize_app
from training_reels.config import AppConfig
from training_reels.logging_utils import DEFAULT_LOG_FORMAT, configure_logging, get_log_file_path
from training_reels.services.credentials import CredentialStore
from training_reels.services.progress import describe_job_status, format_file_size
from training_reels.services.validation import FFprobeVideoProbe, VideoProbe, validate_video_file
from training_reels.services.workflow import (
    PollingTimeout,
    ReelUploadWorkflow,
    VideoValidationError,
    poll_until_terminal,
)
from training_reels.transfer import ChunkedUploadManager, UploadError
from training_reels.ui.console import (
    UploadProgressView,
    render_job,
    render_upload_status,
    render_validation,
)


LOGGER = logging.getLogger("training_reels.cli")

UNEXPECTED_RESPONSE_MESSAGE = "Unexpected response from server."


cli = typer.Typer(add_completion=False, help="Training Reels upload commands")
console = Console()


class Privacy(str, Enum):
    INTERNAL = "internal"
    CUSTOMER = "customer"
    PUBLIC = "public"


def _prepare_logging(storage_root: Path) -> None:
    log_file = get_log_file_path(storage_root)
    formatter = logging.Formatter(DEFAULT_LOG_FORMAT)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(formatter)
    configure_logging(handlers=[file_handler])


def _make_probe() -> VideoProbe:
    return FFprobeVideoProbe()


def _build_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Return the HTTP transport shared by API and chunk clients (``None`` = default)."""

    return None


def _fail(message: str) -> typer.Exit:
    console.print(f"[bold red]{message}")
    return typer.Exit(code=1)


@cli.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Show the available commands when none is given."""

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


@cli.command()
def login(token: str = typer.Option(..., prompt=True, hide_input=True, help="API bearer token")) -> None:
    """Store the bearer token used for API requests."""

    config = initialize_app()
    _prepare_logging(config.storage_root)
    if not token.strip():
        raise typer.BadParameter("Token must not be empty.", param_hint="--token")
    CredentialStore(config).save_token(token)
    typer.echo("Token saved.")


@cli.command()
def logout() -> None:
    """Forget the stored bearer token."""

    config = initialize_app()
    _prepare_logging(config.storage_root)
    CredentialStore(config).clear()
    typer.echo("Signed out.")


@cli.command()
def validate(
    video: Path = typer.Argument(
        ...,
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
        help="Video file to check before uploading.",
    ),
    mime_type: Optional[str] = typer.Option(None, "--mime-type", help="Override the detected MIME type."),
) -> None:
    """Check *video* against the reel upload rules."""

    config = initialize_app()
    _prepare_logging(config.storage_root)

    result = validate_video_file(video, mime_type=mime_type, probe=_make_probe())
    render_validation(result, title=video.name, console=console)
    if not result.is_valid:
        raise typer.Exit(code=1)


async def _run_upload(
    config: AppConfig,
    video: Path,
    *,
    mime_type: Optional[str],
    title: Optional[str],
    description: Optional[str],
    tags: List[str],
    tooling: List[str],
    machine_model: Optional[str],
    process_step: Optional[str],
    privacy: Privacy,
    wait: bool,
) -> None:
    transport = _build_transport()
    credentials = CredentialStore(config)
    async with ApiClient(
        config.api_base_url,
        credentials=credentials,
        timeout=config.request_timeout,
        transport=transport,
    ) as api_client, httpx.AsyncClient(
        timeout=config.request_timeout, transport=transport
    ) as transfer_client:
        manager = ChunkedUploadManager(transfer_client, config.upload_settings())
        workflow = ReelUploadWorkflow(
            UploadApi(api_client),
            manager,
            reels_api=ReelsApi(api_client),
            transcoding_api=TranscodingApi(api_client),
            probe=_make_probe(),
        )

        with UploadProgressView(video.name, console=console) as view:
            outcome = await workflow.upload(video, mime_type=mime_type, on_progress=view.on_progress)

        for warning in outcome.warnings:
            console.print(f"[yellow]! {warning}")
        console.print(
            f"[green]Uploaded {format_file_size(outcome.record.total_size)} "
            f"as upload {outcome.upload_id}."
        )

        job_id = outcome.processing_job_id
        if title:
            created = await workflow.create_reel(
                CreateReelRequest(
                    upload_id=outcome.upload_id,
                    title=title,
                    description=description,
                    tags=tags,
                    tooling=tooling,
                    machine_model=machine_model,
                    process_step=process_step,
                    privacy=privacy.value,
                )
            )
            console.print(f"[green]Reel created: {created.reel.id}")
            if created.processing_job is not None and created.processing_job.id:
                job_id = created.processing_job.id
        else:
            manager.cleanup_upload(outcome.upload_id)

        if wait and job_id:
            job = await workflow.wait_for_job(
                job_id,
                interval=config.job_poll_interval,
                on_update=lambda update: console.print(
                    f"[dim]{describe_job_status(update)} ({round(update.progress)}%)"
                ),
            )
            render_job(job, console=console)
            if job.status == "error":
                raise _fail(describe_job_status(job))


@cli.command()
def upload(
    video: Path = typer.Argument(
        ...,
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
        help="Video file to upload.",
    ),
    mime_type: Optional[str] = typer.Option(None, "--mime-type", help="Override the detected MIME type."),
    title: Optional[str] = typer.Option(None, help="Create a reel with this title once uploaded."),
    description: Optional[str] = typer.Option(None, help="Reel description."),
    tag: List[str] = typer.Option([], "--tag", help="Tag to attach (repeatable)."),
    tool: List[str] = typer.Option([], "--tool", help="Tooling used in the clip (repeatable)."),
    machine_model: Optional[str] = typer.Option(None, help="Machine model shown in the clip."),
    process_step: Optional[str] = typer.Option(None, help="Process step shown in the clip."),
    privacy: Privacy = typer.Option(Privacy.INTERNAL, help="Reel visibility."),
    wait: bool = typer.Option(False, "--wait", help="Follow the processing job until it finishes."),
) -> None:
    """Validate and upload *video* in concurrent chunks."""

    config = initialize_app()
    _prepare_logging(config.storage_root)

    try:
        asyncio.run(
            _run_upload(
                config,
                video,
                mime_type=mime_type,
                title=title,
                description=description,
                tags=tag,
                tooling=tool,
                machine_model=machine_model,
                process_step=process_step,
                privacy=privacy,
                wait=wait,
            )
        )
    except VideoValidationError as error:
        render_validation(error.result, title=video.name, console=console)
        raise typer.Exit(code=1) from error
    except AuthenticationError as error:
        raise _fail("Authentication required. Run 'login' with a valid token.") from error
    except ValidationError as error:
        LOGGER.error("Malformed API response: %s", error)
        raise _fail(UNEXPECTED_RESPONSE_MESSAGE) from error
    except (ApiError, UploadError, PollingTimeout, httpx.HTTPError) as error:
        LOGGER.error("Upload of %s failed: %s", video, error)
        raise _fail(f"Upload failed: {error}") from error


async def _fetch_upload_status(config: AppConfig, upload_id: str, wait: bool) -> None:
    async with ApiClient(
        config.api_base_url,
        credentials=CredentialStore(config),
        timeout=config.request_timeout,
        transport=_build_transport(),
    ) as api_client:
        uploads = UploadApi(api_client)
        if wait:
            status = await poll_until_terminal(
                lambda: uploads.get_upload_status(upload_id),
                interval=config.upload_poll_interval,
                label=f"Upload {upload_id}",
            )
        else:
            status = await uploads.get_upload_status(upload_id)
    render_upload_status(upload_id, status, console=console)


@cli.command("upload-status")
def upload_status(
    upload_id: str = typer.Argument(..., help="Upload identifier."),
    wait: bool = typer.Option(False, "--wait", help="Poll until the upload finishes."),
) -> None:
    """Show the backend status of an upload."""

    config = initialize_app()
    _prepare_logging(config.storage_root)
    try:
        asyncio.run(_fetch_upload_status(config, upload_id, wait))
    except AuthenticationError as error:
        raise _fail("Authentication required. Run 'login' with a valid token.") from error
    except ValidationError as error:
        LOGGER.error("Malformed API response: %s", error)
        raise _fail(UNEXPECTED_RESPONSE_MESSAGE) from error
    except (ApiError, PollingTimeout, httpx.HTTPError) as error:
        raise _fail(f"Status lookup failed: {error}") from error


async def _fetch_job_status(config: AppConfig, job_id: str, wait: bool) -> None:
    async with ApiClient(
        config.api_base_url,
        credentials=CredentialStore(config),
        timeout=config.request_timeout,
        transport=_build_transport(),
    ) as api_client:
        transcoding = TranscodingApi(api_client)
        if wait:
            job = await poll_until_terminal(
                lambda: transcoding.get_job_status(job_id),
                interval=config.job_poll_interval,
                label=f"Processing job {job_id}",
            )
        else:
            job = await transcoding.get_job_status(job_id)
    render_job(job, console=console)


@cli.command("job-status")
def job_status(
    job_id: str = typer.Argument(..., help="Processing job identifier."),
    wait: bool = typer.Option(False, "--wait", help="Poll until the job finishes."),
) -> None:
    """Show the state of a transcoding job."""

    config = initialize_app()
    _prepare_logging(config.storage_root)
    try:
        asyncio.run(_fetch_job_status(config, job_id, wait))
    except AuthenticationError as error:
        raise _fail("Authentication required. Run 'login' with a valid token.") from error
    except ValidationError as error:
        LOGGER.error("Malformed API response: %s", error)
        raise _fail(UNEXPECTED_RESPONSE_MESSAGE) from error
    except (ApiError, PollingTimeout, httpx.HTTPError) as error:
        raise _fail(f"Status lookup failed: {error}") from error


if __name__ == "__main__":
    cli()
