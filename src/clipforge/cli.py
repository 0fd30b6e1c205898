"""ClipForge command-line interface with subcommands.

Usage:
    clipforge-cli duration <project.json>
    clipforge-cli plan <project.json>
    clipforge-cli command <project.json> -o out.mp4 [--resolution 1080p] [--codec h264] ...
    clipforge-cli export <project.json> -o out.mp4 [--resolution 1080p] [--codec h264] ...
"""

import argparse
import asyncio
import json
import logging
import shlex
import sys
from pathlib import Path

from clipforge.config import settings
from clipforge.errors import ClipForgeError
from clipforge.export.compiler import generate_plan, write_concat_file
from clipforge.jobs.events import ExportEvent, ExportProgressEvent
from clipforge.jobs.manager import ExportJobManager
from clipforge.jobs.models import ExportStatus
from clipforge.models.export import (
    AudioCodec,
    ExportQuality,
    ExportResolution,
    ExportSettings,
    VideoCodec,
)
from clipforge.models.project import Project
from clipforge.timeline.editor import TimelineEditor
from clipforge.timeline.placement import PlacementPolicy


def _load_editor(path_str: str) -> TimelineEditor:
    path = Path(path_str).resolve()
    if not path.exists():
        print(f"Error: project file not found: {path}", file=sys.stderr)
        sys.exit(1)
    project = Project.load(path)
    return TimelineEditor.from_project(project, PlacementPolicy.from_settings(settings))


def _export_settings(args: argparse.Namespace, project_path: str) -> ExportSettings:
    """Project export settings overridden by whatever flags were given."""
    base = Project.load(Path(project_path)).export_settings
    overrides = {
        "resolution": args.resolution,
        "codec": args.codec,
        "quality": args.quality,
        "fps": args.fps,
        "audio_codec": args.audio_codec,
        "audio_bitrate": args.audio_bitrate,
    }
    if args.no_hwaccel:
        overrides["hardware_acceleration"] = False
    merged = {**base.model_dump(), **{k: v for k, v in overrides.items() if v is not None}}
    return ExportSettings.model_validate(merged)


# --- duration / plan / command ---


def cmd_duration(args: argparse.Namespace) -> int:
    editor = _load_editor(args.input)
    print(f"{editor.duration():.3f}")
    return 0


def cmd_plan(args: argparse.Namespace) -> int:
    editor = _load_editor(args.input)
    plan = generate_plan(editor.snapshot(), editor.media)
    print(json.dumps(plan.model_dump(mode="json"), ensure_ascii=False, indent=2))
    if args.concat_dir:
        concat_path = write_concat_file(plan, Path(args.concat_dir))
        print(f"Concat list written: {concat_path}", file=sys.stderr)
    return 0


def cmd_command(args: argparse.Namespace) -> int:
    editor = _load_editor(args.input)
    manager = ExportJobManager(editor, settings=settings)
    invocation = manager.prepare(args.output, _export_settings(args, args.input))
    print(shlex.join(invocation.argv))
    return 0


# --- export ---


def _print_progress(event: ExportEvent) -> None:
    if not isinstance(event, ExportProgressEvent):
        return
    bar_width = 30
    filled = int(bar_width * event.progress)
    bar = "#" * filled + "-" * (bar_width - filled)
    print(
        f"\r  [{bar}] {event.progress * 100:5.1f}% "
        f"frame {event.current_frame}/{event.total_frames} "
        f"{event.fps:.1f} fps  ETA {event.eta_seconds:.0f}s",
        end="",
        flush=True,
    )


async def cmd_export(args: argparse.Namespace) -> int:
    """Render the project; Ctrl-C cancels and removes the partial file."""
    editor = _load_editor(args.input)
    manager = ExportJobManager(editor, settings=settings)
    manager.bus.add_listener(_print_progress)

    output = Path(args.output).resolve()
    job = manager.export_timeline(output, _export_settings(args, args.input))
    print(f"Exporting {editor.duration():.2f}s -> {output}")

    try:
        job = await manager.wait(job.id)
    except asyncio.CancelledError:
        print("\nCancelling...")
        job = await manager.cancel_export(job.id)

    print()
    if job.status == ExportStatus.COMPLETED:
        print(f"Done: {job.output_path}")
        return 0
    if job.status == ExportStatus.CANCELLED:
        print("Export cancelled", file=sys.stderr)
        return 130
    print(f"Export failed: {job.error}", file=sys.stderr)
    return 1


def _add_settings_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-o", "--output", type=str, required=True, help="Output video path")
    parser.add_argument("--resolution", choices=[r.value for r in ExportResolution], help="Output resolution")
    parser.add_argument("--codec", choices=[c.value for c in VideoCodec], help="Video codec")
    parser.add_argument("--quality", choices=[q.value for q in ExportQuality], help="Quality preset")
    parser.add_argument("--fps", type=int, help="Override frame rate")
    parser.add_argument("--audio-codec", choices=[c.value for c in AudioCodec], help="Audio codec")
    parser.add_argument("--audio-bitrate", type=int, help="Audio bitrate in kbps")
    parser.add_argument("--no-hwaccel", action="store_true", help="Force software encoding")


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="clipforge-cli",
        description="ClipForge - timeline inspection and export",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command")

    # --- duration ---
    p_duration = subparsers.add_parser("duration", help="Print the timeline duration in seconds")
    p_duration.add_argument("input", type=str, help="Project JSON file")

    # --- plan ---
    p_plan = subparsers.add_parser("plan", help="Print the export plan as JSON")
    p_plan.add_argument("input", type=str, help="Project JSON file")
    p_plan.add_argument("--concat-dir", type=str, help="Also write concat.txt for the base track here")

    # --- command ---
    p_command = subparsers.add_parser("command", help="Print the ffmpeg command line")
    p_command.add_argument("input", type=str, help="Project JSON file")
    _add_settings_flags(p_command)

    # --- export ---
    p_export = subparsers.add_parser("export", help="Render the timeline with ffmpeg")
    p_export.add_argument("input", type=str, help="Project JSON file")
    _add_settings_flags(p_export)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level.upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "duration":
            code = cmd_duration(args)
        elif args.command == "plan":
            code = cmd_plan(args)
        elif args.command == "command":
            code = cmd_command(args)
        else:
            code = asyncio.run(cmd_export(args))
    except ClipForgeError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
