"""
cadence.cli - Typer CLI entry point.

Analyzes a recording plus its transcript and prints the speaking report.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from cadence import __version__
from cadence.config import BUILTIN_PROFILES, create_default_config, load_config, write_config
from cadence.exceptions import AnalysisCancelled, CadenceError
from cadence.logging import configure_logging
from cadence.models import AudioMetrics
from cadence.utils import format_duration, quality_style, score_style

app = typer.Typer(
    name="cadence",
    help="Speech performance analytics.\n\n"
    "Scores pacing, pauses, filler words and audio quality of a recorded talk "
    "from its audio and time-aligned transcript.",
    add_completion=False,
)
console = Console()

DEFAULT_CONFIG_NAME = "cadence.yaml"


def find_config_file() -> Path | None:
    """Find cadence.yaml in the current directory or any parent."""
    current = Path.cwd()
    while current != current.parent:
        if (current / DEFAULT_CONFIG_NAME).exists():
            return current / DEFAULT_CONFIG_NAME
        current = current.parent
    return None


def version_callback(value: bool) -> None:
    if value:
        console.print(f"cadence {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Cadence - speech performance analytics."""
    pass


def print_report(metrics: AudioMetrics) -> None:
    """Render the report as rich tables."""
    performance = metrics.speaking_performance
    style = score_style(performance.overall_score)
    console.print(
        f"\n[bold]Overall score:[/bold] [{style}]{performance.overall_score}/100[/{style}]"
        f"  [dim]({format_duration(metrics.duration_seconds)}, language "
        f"{metrics.language or 'unknown'})[/dim]\n"
    )

    rate = metrics.speech_rate
    pauses = metrics.pause_analysis
    fillers = metrics.filler_words
    audio = metrics.audio_quality

    table = Table(title="Speaking Metrics")
    table.add_column("Dimension", style="cyan")
    table.add_column("Value")
    table.add_column("Quality")
    table.add_column("Compared to optimal", style="dim")

    compared = performance.compared_to_optimal
    rows = [
        ("Speech rate", f"{rate.words_per_minute:.0f} wpm", rate.articulation.quality, compared.speech_rate),
        ("Pauses", f"{pauses.total_pauses} ({pauses.pauses_per_minute:.1f}/min)", pauses.quality, compared.pauses),
        ("Filler words", f"{fillers.total_count} ({fillers.filler_rate:.1f}%)", fillers.quality, compared.filler_words),
        ("Volume", f"{audio.volume.avg_db:.1f} dB", audio.volume.quality, compared.volume),
        ("Pitch", f"{audio.pitch.avg_hz:.0f} Hz ± {audio.pitch.variation:.0f}", audio.pitch.quality, compared.pitch),
        ("Clarity", f"{audio.clarity.snr:.1f} dB SNR", audio.clarity.quality, compared.clarity),
    ]
    for name, value, quality, comparison in rows:
        q_style = quality_style(quality.value)
        table.add_row(name, value, f"[{q_style}]{quality.value}[/{q_style}]", comparison.value)
    console.print(table)

    if fillers.by_type:
        filler_table = Table(title="Filler Words")
        filler_table.add_column("Filler", style="cyan")
        filler_table.add_column("Count", justify="right")
        for word, count in fillers.by_type.items():
            filler_table.add_row(word, str(count))
        console.print(filler_table)

    for label, items, colour in (
        ("Strengths", performance.strengths, "green"),
        ("Weaknesses", performance.weaknesses, "red"),
        ("Suggestions", performance.suggestions, "yellow"),
    ):
        if items:
            console.print(f"\n[bold {colour}]{label}[/bold {colour}]")
            for item in items:
                console.print(f"  • {item}")

    if metrics.warnings:
        console.print("\n[yellow]Warnings:[/yellow]")
        for warning in metrics.warnings:
            console.print(f"  [dim]{warning.stage.value}:[/dim] {warning.message}")


@app.command("analyze")
def analyze(
    audio_file: Path = typer.Argument(..., help="Recorded audio file"),
    transcript_file: Path = typer.Argument(..., help="Transcript JSON with word timestamps"),
    language: str | None = typer.Option(None, "--language", "-l", help="Override transcript language"),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Path to cadence.yaml"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the report JSON here"),
    as_json: bool = typer.Option(False, "--json", help="Print the report JSON instead of tables"),
    timeout: float | None = typer.Option(None, "--timeout", help="Abort after this many seconds"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Analyze one recording and its transcript."""
    configure_logging(verbose)

    from cadence.engine import AnalysisEngine
    from cadence.io import load_audio, load_transcript, write_text

    try:
        config = load_config(config_file or find_config_file())
        engine = AnalysisEngine(config)
        transcript = load_transcript(transcript_file, language=language)
        if not as_json:
            console.print(f"[dim]  Loading audio: {audio_file.name}[/dim]")
        audio = load_audio(audio_file)
        metrics = engine.analyze(audio, transcript, timeout=timeout)
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except AnalysisCancelled as e:
        console.print(f"[yellow]{e}[/yellow]")
        raise typer.Exit(130)
    except CadenceError as e:
        console.print(f"[red]Error ({e.category}): {e}[/red]")
        raise typer.Exit(1)

    report = metrics.to_json()
    if output is not None:
        write_text(output, report + "\n")

    if as_json:
        typer.echo(report)
        return

    print_report(metrics)
    if output is not None:
        console.print(f"\n[green]✓[/green] Report written to {output}")


@app.command("init-config")
def init_config(
    path: Path = typer.Argument(Path(DEFAULT_CONFIG_NAME), help="Where to write the config"),
    profile: str = typer.Option(
        "presentation",
        "--profile",
        "-p",
        help="Profile: presentation, lecture, or conversation",
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Write a default cadence.yaml for a profile."""
    if profile not in BUILTIN_PROFILES:
        console.print(
            f"[red]Error: Unknown profile '{profile}' "
            f"(choose from {', '.join(BUILTIN_PROFILES)})[/red]"
        )
        raise typer.Exit(1)

    if path.exists() and not force:
        console.print(f"[red]Error: {path} already exists (use --force to overwrite)[/red]")
        raise typer.Exit(1)

    write_config(create_default_config(profile), path)
    console.print(f"[green]✓[/green] Wrote {path} with profile '{profile}'")


@app.command("lexicon")
def show_lexicon(
    language: str = typer.Argument(..., help="Language code, e.g. it or en-US"),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Path to cadence.yaml"),
) -> None:
    """List the filler words used for a language."""
    from cadence.lexicon import LexiconRegistry

    try:
        config = load_config(config_file or find_config_file())
        registry = LexiconRegistry.from_config(config.fillers)
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except CadenceError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    lexicon, is_fallback = registry.get(language)
    if is_fallback:
        console.print(
            f"[yellow]No lexicon for '{language}'; falling back to '{lexicon.language}'.[/yellow]"
        )

    table = Table(title=f"Filler lexicon ({lexicon.language})")
    table.add_column("Entry", style="cyan")
    table.add_column("Kind", style="green")
    for entry, kind in lexicon.entries:
        table.add_row(entry, kind.value)
    console.print(table)
