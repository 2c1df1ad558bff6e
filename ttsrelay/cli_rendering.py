"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
model listings, and job status rows.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .errors import RelayError
from .models.datatypes import Job, VoiceModel


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, RelayError):
        typer.secho(
            f"{command_name} failed [{exc.kind}]: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.provider_message and exc.provider_message not in exc.detail:
            typer.secho(f"Provider message: {exc.provider_message}", err=True)
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_model_list(models: tuple[VoiceModel, ...]) -> None:
    """Print one `token  title` row per model, in provider order."""

    if not models:
        typer.echo("No voice models found.")
        return
    for model in models:
        language = f" [{model.language}]" if model.language else ""
        typer.echo(f"{model.token}  {model.title}{language}")


def echo_job(job: Job, audio_url: str | None) -> None:
    """Print job token, status, and the canonical audio URL when known."""

    typer.echo(f"Job: {job.token}")
    provider_status = f" (provider: {job.provider_status})" if job.provider_status else ""
    typer.echo(f"Status: {job.status.value}{provider_status}")
    typer.echo(f"Audio URL: {audio_url or '(not available)'}")
