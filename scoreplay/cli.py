"""scoreplay CLI entry point."""

import logging
import sys

import click

from scoreplay import __version__
from scoreplay.playback import DEFAULT_FPS, Player, compose_frame, max_measure_count
from scoreplay.project_loader import ProjectError, ScoreProject
from scoreplay.score_parser import ScoreParseError

MAX_FPS = 240


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_project(root: str, eager: bool) -> ScoreProject:
    """Load *root* or exit with status 1 on any loading error."""
    try:
        return ScoreProject.load(root, eager=eager)
    except ScoreParseError as exc:
        click.echo(f"  ERROR: Invalid score — {exc}", err=True)
    except ProjectError as exc:
        click.echo(f"  ERROR: Invalid project — {exc}", err=True)
    except OSError as exc:
        click.echo(f"  ERROR: Could not read project — {exc}", err=True)
    sys.exit(1)


project_root = click.argument(
    "root", type=click.Path(exists=True, file_okay=False, readable=True)
)
verbose_option = click.option(
    "--verbose", "-v", is_flag=True, help="Log diagnostics to stderr."
)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="scoreplay")
def main() -> None:
    """scoreplay — ASCII-art score player synchronised to an audio track."""


# ── play subcommand ────────────────────────────────────────────────────────────

@main.command()
@project_root
@click.option(
    "--offset",
    type=float,
    default=None,
    metavar="SECS",
    help="Override AudioOffsetSec from meta.yaml (negative starts the animation early).",
)
@click.option(
    "--fps",
    type=click.IntRange(1, MAX_FPS),
    default=DEFAULT_FPS,
    show_default=True,
    help="Animation tick rate.",
)
@click.option(
    "--lazy",
    is_flag=True,
    help="Read data assets on demand instead of loading them all up front.",
)
@verbose_option
def play(root: str, offset: float | None, fps: int, lazy: bool, verbose: bool) -> None:
    """
    Play a score project in the terminal. Press any key to stop.

    ROOT is the project directory (meta.yaml, data/, scores/).

    \b
    Examples:
      scoreplay play ./my_song
      scoreplay play ./my_song --offset -0.25 --fps 30
    """
    from scoreplay.audio_player import AudioPlayer
    from scoreplay.terminal import CursesTerminal

    _configure_logging(verbose)

    click.echo(f"scoreplay v{__version__}")
    click.echo("[1/4] Loading project...")
    project = _load_project(root, eager=not lazy)
    audio_offset = project.meta.audio_offset if offset is None else offset
    click.echo(f"      Tracks : {len(project.scores)}  |  Tempo: {project.meta.bpm} BPM")
    click.echo(f"      Audio  : {project.audio_path}  (offset {audio_offset:+.2f}s)")

    click.echo("[2/4] Indexing scores...")
    tracks = project.index()

    audio_path = str(project.audio_path)
    try:
        with AudioPlayer() as audio:
            click.echo("[3/4] Decoding audio...")
            audio.prepare(audio_path)

            click.echo("[4/4] Playing...")
            with CursesTerminal() as terminal:
                player = Player(
                    tracks,
                    bpm=project.meta.bpm,
                    terminal=terminal,
                    audio=audio,
                    audio_path=audio_path,
                    audio_offset=audio_offset,
                    fps=fps,
                )
                result = player.run()
    except KeyboardInterrupt:
        click.echo("Stopped.")
        return
    except OSError as exc:
        click.echo(f"  ERROR: Could not read audio — {exc}", err=True)
        sys.exit(1)
    except Exception as exc:
        click.echo(f"  ERROR: Could not play audio — {exc}", err=True)
        sys.exit(1)

    click.echo(f"Done!  Playback {result.reason} after {result.frames_rendered} frame(s).")


# ── check subcommand ───────────────────────────────────────────────────────────

@main.command()
@project_root
@click.option("--lazy", is_flag=True, help="Read data assets on demand.")
@verbose_option
def check(root: str, lazy: bool, verbose: bool) -> None:
    """
    Load, parse and index a score project without playing it.

    ROOT is the project directory (meta.yaml, data/, scores/).
    """
    _configure_logging(verbose)

    project = _load_project(root, eager=not lazy)
    tracks = project.index()

    click.echo(f"Project : {project.root}")
    click.echo(f"Tempo   : {project.meta.bpm} BPM  |  Offset: {project.meta.audio_offset:+.2f}s")
    click.echo(f"Audio   : {project.audio_path}")
    click.echo(f"Tracks  : {len(tracks)}  |  Measures: {max_measure_count(tracks)}")
    for n, track in enumerate(tracks):
        item_count = sum(len(measure.items) for measure in track.measures)
        click.echo(f"  track {n}: {len(track.measures)} measure(s), {item_count} item(s)")


# ── frame subcommand ───────────────────────────────────────────────────────────

@main.command()
@project_root
@click.option(
    "--at",
    "position",
    type=click.FloatRange(min=0.0),
    required=True,
    metavar="MEASURE",
    help="Fractional measure position, e.g. 2.5 = halfway through the third measure.",
)
@verbose_option
def frame(root: str, position: float, verbose: bool) -> None:
    """
    Print the frame shown at a given measure position.

    ROOT is the project directory (meta.yaml, data/, scores/).

    \b
    Examples:
      scoreplay frame ./my_song --at 0
      scoreplay frame ./my_song --at 3.75
    """
    _configure_logging(verbose)

    project = _load_project(root, eager=True)
    text = compose_frame(project.index(), position)
    if text is None:
        click.echo("(nothing displayed)", err=True)
        return
    click.echo(text)
