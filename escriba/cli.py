"""CLI interface for the transcription pipeline."""

import asyncio
import logging
import signal
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from . import __version__
from .audio import SUPPORTED_EXTENSIONS, check_ffmpeg, discover_audio_files
from .backends import SegmentTranscriber, TranscriptionBackendHandle
from .backends.base import Backend
from .backends.mlx_audio import is_mlx_audio_available
from .backends.parakeet import is_parakeet_available
from .backends.registry import DEFAULT_MODEL, create_backend, list_models, resolve_model
from .config import (
    DEFAULT_DIALECT,
    DEFAULT_OVERLAP,
    DEFAULT_SEGMENT_DURATION,
    DEFAULT_SEGMENT_TIMEOUT,
    DEFAULT_SPLIT_THRESHOLD,
    TranscriptionConfig,
)
from .errors import CancellationError, ConfigurationError, EscribaError
from .formatters import EXTENSIONS, FORMATTERS
from .orchestrator import TranscriptionOrchestrator
from .progress import ProgressChannel
from .types import TranscriptionOutcome

app = typer.Typer(
    name="escriba",
    help="Transcribe Portuguese audio into structured text.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

EXIT_CANCELLED = 130


def setup_logging(verbose: bool) -> None:
    """Route the package's log records through rich on stderr."""
    package_logger = logging.getLogger("escriba")
    package_logger.handlers.clear()
    package_logger.addHandler(
        RichHandler(console=err_console, rich_tracebacks=True, markup=False, show_path=False)
    )
    package_logger.setLevel(logging.INFO if verbose else logging.WARNING)
    package_logger.propagate = False


def parse_formats(format_str: str) -> list[str]:
    """Parse comma-separated format string into list of formats."""
    formats = []
    for part in format_str.split(","):
        fmt = part.strip().lower()
        if fmt == "all":
            return list(FORMATTERS.keys())
        if fmt and fmt in FORMATTERS:
            if fmt not in formats:
                formats.append(fmt)
        elif fmt:
            err_console.print(f"[yellow]Warning: Unknown format '{fmt}', ignoring[/yellow]")
    return formats or ["md"]  # Default to markdown if nothing valid


def version_callback(value: bool) -> None:
    if value:
        console.print(f"escriba {__version__}")
        raise typer.Exit()


def _backend_available(backend: Backend) -> bool:
    if backend == Backend.PARAKEET:
        return is_parakeet_available()
    return is_mlx_audio_available()


def list_models_callback(value: bool) -> None:
    """Print curated models and exit."""
    if value:
        models = list_models()
        available_models = [m for m in models if _backend_available(m.backend)]
        unavailable_models = [m for m in models if not _backend_available(m.backend)]

        console.print("[bold]Available Models:[/bold]\n")
        if not available_models:
            console.print("  [dim]none installed[/dim]\n")
        for model in available_models:
            timestamps = "[green]✓[/green]" if model.capabilities.supports_timestamps else "[red]✗[/red]"
            hint = "[green]✓[/green]" if model.capabilities.supports_language_hint else "[red]✗[/red]"
            console.print(f"  [cyan]{model.model_id}[/cyan]")
            console.print(f"    Backend: {model.backend}")
            console.print(f"    Timestamps: {timestamps}  Language hint: {hint}")
            if model.aliases:
                console.print(f"    Aliases: {', '.join(model.aliases)}")
            console.print(f"    {model.description}")
            console.print()

        # Show unavailable models with install hint
        if unavailable_models:
            console.print("[dim]─" * 50 + "[/dim]")
            console.print("\n[bold dim]Additional Models (backend not installed):[/bold dim]\n")
            for model in unavailable_models:
                aliases = f" ({', '.join(model.aliases)})" if model.aliases else ""
                console.print(
                    f"  [dim]{model.model_id}{aliases}: "
                    f"pip install 'escriba\\[{model.backend}]'[/dim]"
                )
            console.print()

        raise typer.Exit()


def _validate_language_capabilities(language: str | None, model_id: str) -> None:
    """Reject an explicit --language for models that cannot take a hint.

    Raises:
        typer.BadParameter: If the model auto-detects the language.
    """
    if language is None:
        return

    try:
        model_info = resolve_model(model_id)
    except ValueError:
        # Unknown model - let it pass, the backend will handle it
        return

    if not model_info.capabilities.supports_language_hint:
        supported_models = [
            m.model_id for m in list_models() if m.capabilities.supports_language_hint
        ]
        raise typer.BadParameter(
            f"Model '{model_id}' detects the language itself and does not accept --language. "
            f"Models with language support: {', '.join(supported_models)}",
            param_hint="--language",
        )


def _validate_backend_availability(model_id: str, backend: str | None) -> None:
    """Validate that the required backend library is installed.

    Raises:
        typer.BadParameter: If the backend is unknown or its library is missing.
    """
    if backend is not None:
        try:
            required = Backend(backend)
        except ValueError:
            raise typer.BadParameter(
                f"Invalid backend '{backend}'. Must be one of: "
                + ", ".join(b.value for b in Backend),
                param_hint="--backend",
            ) from None
    else:
        try:
            required = resolve_model(model_id).backend
        except ValueError as e:
            raise typer.BadParameter(
                f"{e} Pass --backend to use a model outside the registry.",
                param_hint="--model",
            ) from None

    if not _backend_available(required):
        raise typer.BadParameter(
            f"Model '{model_id}' requires the {required} backend which is not installed. "
            f"Install with: pip install 'escriba[{required}]'",
            param_hint="--backend" if backend else "--model",
        )


def _write_outputs(
    outcome: TranscriptionOutcome,
    audio_path: Path,
    formats: list[str],
    output: Path | None,
    console: Console,
    verbose: bool,
) -> None:
    """Write the outcome to files in all requested formats."""
    out_dir = output or audio_path.parent

    for fmt in formats:
        out_file = out_dir / (audio_path.stem + EXTENSIONS[fmt])
        out_file.write_text(FORMATTERS[fmt](outcome), encoding="utf-8")

        if verbose:
            console.print(f"  [green]✓[/green] {out_file}")


def _show_dry_run(
    audio_files: list[Path],
    formats: list[str],
    output: Path | None,
    console: Console,
) -> None:
    """Show what files would be processed in dry run mode."""
    console.print(f"[bold]Would process {len(audio_files)} file(s):[/bold]")
    for audio_path in audio_files:
        out_dir = output or audio_path.parent
        for fmt in formats:
            out_file = out_dir / (audio_path.stem + EXTENSIONS[fmt])
            console.print(f"  {audio_path} → {out_file}")


def _check_ffmpeg_warning(err_console: Console) -> None:
    """Print ffmpeg warning if not found."""
    err_console.print(
        "[yellow]Warning: ffmpeg not found. Only WAV, FLAC, OGG and MP3 can be read.[/yellow]"
    )
    err_console.print("[yellow]Install with: brew install ffmpeg (or your package manager)[/yellow]")


async def _render_progress(channel: ProgressChannel, progress: Progress, task, name: str) -> None:
    """Mirror progress events onto a rich progress bar until the channel closes."""
    async for event in channel:
        progress.update(
            task,
            completed=event.progress_percent,
            description=f"[cyan]{name}[/cyan] {event.message}",
        )


async def _process_file(
    audio_path: Path,
    transcriber: SegmentTranscriber,
    config: TranscriptionConfig,
    cancel: asyncio.Event,
    progress: Progress,
    formats: list[str],
    output: Path | None,
    verbose: bool,
) -> bool:
    """Process a single audio file. Returns True on success, False on error.

    Raises:
        CancellationError: If the user interrupted the run.
    """
    channel = ProgressChannel()
    orchestrator = TranscriptionOrchestrator(transcriber, config=config, progress=channel)
    task = progress.add_task(f"[cyan]{audio_path.name}[/cyan]", total=100)
    renderer = asyncio.create_task(_render_progress(channel, progress, task, audio_path.name))

    try:
        outcome = await orchestrator.run(audio_path, cancel=cancel)
        _write_outputs(outcome, audio_path, formats, output, console, verbose)
    except CancellationError:
        raise
    except (EscribaError, OSError) as e:
        err_console.print(f"[red]Error processing {audio_path}: {e}[/red]")
        return False
    finally:
        await renderer
        progress.remove_task(task)

    transcript = outcome.transcript
    if outcome.partial:
        err_console.print(
            f"[yellow]{audio_path.name}: {transcript.segments_failed} of "
            f"{transcript.total_segments} part(s) could not be transcribed[/yellow]"
        )
    return True


async def _process_files(
    audio_files: list[Path],
    transcriber: SegmentTranscriber,
    config: TranscriptionConfig,
    formats: list[str],
    output: Path | None,
    verbose: bool,
    fail_fast: bool,
) -> tuple[int, int]:
    """Process all audio files in order. Returns (success_count, error_count)."""
    success_count = 0
    error_count = 0

    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.set)
        handles_sigint = True
    except (NotImplementedError, RuntimeError):
        # No loop signal handlers on this platform; Ctrl+C raises KeyboardInterrupt
        handles_sigint = False

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
            transient=True,
        ) as progress:
            for audio_path in audio_files:
                if await _process_file(
                    audio_path, transcriber, config, cancel, progress, formats, output, verbose,
                ):
                    success_count += 1
                else:
                    error_count += 1
                    if fail_fast:
                        break
    finally:
        if handles_sigint:
            loop.remove_signal_handler(signal.SIGINT)

    return success_count, error_count


def _print_summary(
    audio_files: list[Path],
    success_count: int,
    error_count: int,
    verbose: bool,
    console: Console,
) -> None:
    """Print processing summary."""
    if len(audio_files) > 1 or verbose:
        console.print()
        console.print(
            f"[bold green]✓ {success_count} file(s) transcribed[/bold green]"
            + (f", [bold red]{error_count} error(s)[/bold red]" if error_count else "")
        )


@app.command()
def main(
    inputs: Annotated[
        list[Path],
        typer.Argument(
            help="Audio files or directories to transcribe",
            exists=True,
        ),
    ],
    output: Annotated[
        Path | None,
        typer.Option(
            "--output", "-o",
            help="Output directory (default: same as input file)",
        ),
    ] = None,
    format: Annotated[
        str,
        typer.Option(
            "--format", "-f",
            help="Output format(s): txt, md, srt, json, or 'all'. Comma-separated.",
        ),
    ] = "md",
    recursive: Annotated[
        bool,
        typer.Option(
            "--recursive", "-r",
            help="Search directories recursively",
        ),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            help="Show what would be processed without transcribing",
        ),
    ] = False,
    fail_fast: Annotated[
        bool,
        typer.Option(
            "--fail-fast/--continue-on-error",
            help="Stop on first error vs continue processing",
        ),
    ] = False,
    model: Annotated[
        str,
        typer.Option(
            "--model", "-m",
            envvar="ESCRIBA_MODEL",
            help="HuggingFace model ID or alias (see --list-models)",
        ),
    ] = DEFAULT_MODEL,
    backend: Annotated[
        str | None,
        typer.Option(
            "--backend", "-b",
            help="Backend: parakeet or mlx-audio (auto-detected from model by default)",
        ),
    ] = None,
    list_models_flag: Annotated[
        bool | None,
        typer.Option(
            "--list-models",
            callback=list_models_callback,
            is_eager=True,
            help="List supported models and exit",
        ),
    ] = None,
    language: Annotated[
        str | None,
        typer.Option(
            "--language", "-l",
            help="Language hint for models that accept one (default: pt)",
        ),
    ] = None,
    dialect: Annotated[
        str,
        typer.Option(
            "--dialect", "-d",
            envvar="ESCRIBA_DIALECT",
            help="Structuring rules to apply: pt-PT or pt-MZ",
        ),
    ] = DEFAULT_DIALECT,
    segment_duration: Annotated[
        float,
        typer.Option(
            "--segment-duration",
            envvar="ESCRIBA_SEGMENT_DURATION",
            help="Segment length in seconds when audio is split",
        ),
    ] = DEFAULT_SEGMENT_DURATION,
    overlap: Annotated[
        float,
        typer.Option(
            "--overlap",
            envvar="ESCRIBA_OVERLAP",
            help="Seconds of audio shared by consecutive segments",
        ),
    ] = DEFAULT_OVERLAP,
    split_threshold: Annotated[
        float,
        typer.Option(
            "--split-threshold",
            envvar="ESCRIBA_SPLIT_THRESHOLD",
            help="Split audio longer than this many seconds",
        ),
    ] = DEFAULT_SPLIT_THRESHOLD,
    timeout: Annotated[
        float,
        typer.Option(
            "--timeout",
            envvar="ESCRIBA_TIMEOUT",
            help="Per-segment timeout in seconds (0 to wait indefinitely)",
        ),
    ] = DEFAULT_SEGMENT_TIMEOUT,
    punctuation: Annotated[
        bool,
        typer.Option(
            "--punctuation/--no-punctuation",
            help="Restore commas and sentence boundaries",
        ),
    ] = True,
    structure: Annotated[
        bool,
        typer.Option(
            "--structure/--no-structure",
            help="Detect headings, lists, quotes and paragraphs",
        ),
    ] = True,
    formatting: Annotated[
        bool,
        typer.Option(
            "--formatting/--no-formatting",
            help="Emphasise intensifiers and transition words",
        ),
    ] = True,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose", "-v",
            help="Show detailed progress",
        ),
    ] = False,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version", "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = None,
) -> None:
    """Transcribe audio files to structured Markdown, text, SRT, or JSON."""
    setup_logging(verbose)

    if timeout < 0:
        raise typer.BadParameter("Must be >= 0", param_hint="--timeout")

    try:
        config = TranscriptionConfig(
            dialect=dialect,
            enable_punctuation=punctuation,
            enable_structure_detection=structure,
            enable_formatting=formatting,
            segment_duration_seconds=segment_duration,
            overlap_seconds=overlap,
            split_threshold_seconds=split_threshold,
            segment_timeout_seconds=timeout or None,
        )
        if language:
            config = config.replace(language_hint=language)
        config.validate()
    except ConfigurationError as e:
        raise typer.BadParameter(str(e)) from None

    formats = parse_formats(format)

    # Discover audio files
    audio_files = discover_audio_files(inputs, recursive=recursive)

    if not audio_files:
        err_console.print("[red]No audio files found.[/red]")
        err_console.print(f"Supported formats: {', '.join(sorted(SUPPORTED_EXTENSIONS))}")
        raise typer.Exit(1)

    # Create output directory if specified
    if output:
        output.mkdir(parents=True, exist_ok=True)

    # Dry run: just show what would be processed
    if dry_run:
        _show_dry_run(audio_files, formats, output, console)
        raise typer.Exit(0)

    # Validate model options BEFORE instantiating backend
    _validate_language_capabilities(language, model)
    _validate_backend_availability(model, backend)

    # Check ffmpeg (warning only)
    if not check_ffmpeg():
        _check_ffmpeg_warning(err_console)

    try:
        speech_backend = create_backend(model, backend)
    except ConfigurationError as e:
        raise typer.BadParameter(str(e), param_hint="--model") from None

    if verbose:
        console.print(f"[dim]Model: {speech_backend.model_id} (loaded on first use)[/dim]")

    transcriber = SegmentTranscriber(
        TranscriptionBackendHandle(speech_backend),
        timeout_seconds=config.segment_timeout_seconds,
    )

    try:
        success_count, error_count = asyncio.run(
            _process_files(audio_files, transcriber, config, formats, output, verbose, fail_fast)
        )
    except CancellationError:
        err_console.print("[yellow]Transcription cancelled.[/yellow]")
        raise typer.Exit(EXIT_CANCELLED) from None

    _print_summary(audio_files, success_count, error_count, verbose, console)

    if error_count:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
