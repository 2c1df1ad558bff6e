"""Command-line interface for ttsrelay.

Responsibilities:
- Expose session, model lookup, and job commands over the relay service.
- Convert CLI arguments into `RelayConfig` and render concise diagnostics.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

from pathlib import Path
import sys
from typing import Annotated

import typer

from .cli_rendering import echo_job, echo_model_list, exit_with_command_error
from .config import ConfigLoader
from .errors import ValidationError
from .models.datatypes import JobStatus
from .parsing import normalize_optional_string
from .service import RelayService
from .telemetry.logger import EventLogger

app = typer.Typer(
    name="ttsrelay",
    no_args_is_help=True,
    help="Text-to-speech job relay CLI.",
)

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="YAML config file; `TTSRELAY_*` variables override it."),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Log relay events to stderr."),
]


def _build_service(config_path: Path | None, verbose: bool) -> RelayService:
    """Load configuration and build the service, mapping config failures."""

    try:
        config = ConfigLoader.load(config_path)
    except FileNotFoundError as exc:
        raise ValidationError(
            f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise ValidationError(
            f"Invalid configuration: {exc}",
            hint="Fix config keys/values and rerun.",
        ) from exc
    event_logger = EventLogger(sink=sys.stderr, level="INFO" if verbose else "WARNING")
    return RelayService.from_config(config, event_logger=event_logger)


def _resolve_model_token(service: RelayService, model: str | None, voice: str | None) -> str:
    """Return an explicit model token, or resolve a voice name into one."""

    token = normalize_optional_string(model)
    if token is not None:
        return token
    name = normalize_optional_string(voice)
    if name is None:
        raise ValidationError(
            "A voice model is required.",
            hint="Pass `--model <token>` or `--voice <name>`.",
        )
    resolved = service.resolve_model(name)
    typer.echo(f"Using voice: {resolved.title} ({resolved.token})")
    return resolved.token


@app.command("login")
def login_command(
    username: Annotated[str, typer.Option("--username", "-u", prompt=True)],
    password: Annotated[
        str, typer.Option("--password", prompt=True, hide_input=True)
    ],
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Log in with account credentials and store the session."""

    try:
        service = _build_service(config_file, verbose)
        service.authenticate(username, password)
    except Exception as exc:
        exit_with_command_error("login", exc)
    typer.echo("Login successful.")


@app.command("token")
def token_command(
    token: Annotated[
        str,
        typer.Option("--token", prompt="API token (hidden input)", hide_input=True),
    ],
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Store a pre-issued API token as the current session."""

    try:
        service = _build_service(config_file, verbose)
        service.authenticate_with_token(token)
    except Exception as exc:
        exit_with_command_error("token", exc)
    typer.echo("API token stored.")


@app.command("logout")
def logout_command(config_file: ConfigOption = None, verbose: VerboseOption = False) -> None:
    """Discard the stored session."""

    try:
        service = _build_service(config_file, verbose)
        removed = service.session_store.invalidate()
    except Exception as exc:
        exit_with_command_error("logout", exc)
    typer.echo("Session cleared." if removed else "No stored session found.")


@app.command("session")
def session_command(config_file: ConfigOption = None, verbose: VerboseOption = False) -> None:
    """Show whether a session is stored."""

    try:
        service = _build_service(config_file, verbose)
        present = service.session_store.has_session()
    except Exception as exc:
        exit_with_command_error("session", exc)
    typer.echo(f"Stored session: {'present' if present else 'not set'}")


@app.command("search")
def search_command(
    term: Annotated[str | None, typer.Argument(help="Search term; blank lists a broad set.")] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Search voice models."""

    try:
        service = _build_service(config_file, verbose)
        models = service.resolver.search(term)
    except Exception as exc:
        exit_with_command_error("search", exc)
    echo_model_list(models)


@app.command("submit")
def submit_command(
    text: Annotated[str, typer.Argument(help="Text to synthesize.")],
    model: Annotated[str | None, typer.Option("--model", "-m", help="Voice model token.")] = None,
    voice: Annotated[str | None, typer.Option("--voice", help="Voice model name.")] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Submit one generation job and print its token."""

    try:
        service = _build_service(config_file, verbose)
        model_token = _resolve_model_token(service, model, voice)
        job = service.submitter.submit(model_token, text)
    except Exception as exc:
        exit_with_command_error("submit", exc)
    typer.echo(f"Job: {job.token}")
    typer.echo(f"Status: {job.status.value}")


@app.command("status")
def status_command(
    job_token: Annotated[str, typer.Argument(help="Job token returned by `submit`.")],
    wait: Annotated[bool, typer.Option("--wait", help="Poll until the job is terminal.")] = False,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Check a job once, or poll it until terminal with `--wait`."""

    try:
        service = _build_service(config_file, verbose)
        if wait:
            job = service.poller.poll_until_terminal(job_token)
        else:
            job = service.poller.check_status(job_token)
        audio_url = service.normalizer.normalize(job)
    except Exception as exc:
        exit_with_command_error("status", exc)
    echo_job(job, audio_url)


@app.command("speak")
def speak_command(
    text: Annotated[str, typer.Argument(help="Text to synthesize.")],
    model: Annotated[str | None, typer.Option("--model", "-m", help="Voice model token.")] = None,
    voice: Annotated[str | None, typer.Option("--voice", help="Voice model name.")] = None,
    out: Annotated[
        Path | None, typer.Option("--out", "-o", help="Save the finished audio here.")
    ] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Submit, wait for the result, and optionally download the audio."""

    try:
        service = _build_service(config_file, verbose)
        model_token = _resolve_model_token(service, model, voice)
        job, audio_url = service.speak(text, model_token, out)
    except Exception as exc:
        exit_with_command_error("speak", exc)
    echo_job(job, audio_url)
    if out is not None and audio_url is not None:
        typer.echo(f"Saved: {out}")
    if job.status is JobStatus.FAILED:
        raise typer.Exit(code=1)


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
