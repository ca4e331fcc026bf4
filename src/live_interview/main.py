"""
Main entry point for the live interview client.
"""

import argparse
import asyncio
import logging
import sys

from live_interview.api.gateway import InterviewGateway
from live_interview.config import Settings, get_settings
from live_interview.media.capture import DeviceCaptureConfig, DeviceCaptureSource
from live_interview.media.player import PlayerConfig, SoundDevicePlayer
from live_interview.media.recorder import FFmpegRecorder
from live_interview.session.controller import SessionController
from live_interview.session.schemas import DisplayMode, SessionSnapshot

COMMANDS = "[r]ecord  [s]top  [u]pload  [e]nd live  [q]uit"

_MODE_LINES = {
    DisplayMode.AI_SPEAKING: "AI is speaking...",
    DisplayMode.LOADING: "Loading...",
    DisplayMode.ERROR: "Failed to process request. Please try again.",
    DisplayMode.FINISHED: "Interview finished.",
}


def setup_logging() -> None:
    """Configure application logging."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def build_parser(settings: Settings | None = None) -> argparse.ArgumentParser:
    settings = settings or get_settings()
    p = argparse.ArgumentParser(prog="live-interview", description="Record and upload live interview answers")
    p.add_argument(
        "--base-url",
        default=settings.api_base_url,
        help="Interview service base URL (default: API_BASE_URL or http://127.0.0.1:5001)",
    )
    p.add_argument(
        "--video-device",
        default=settings.video_device,
        help="Camera device (default: VIDEO_DEVICE or /dev/video0)",
    )
    p.add_argument(
        "--audio-device",
        default=settings.audio_device,
        help="Microphone device name (default: AUDIO_DEVICE or system default)",
    )
    p.add_argument(
        "--audio-format",
        default=settings.audio_format,
        choices=["pulse", "alsa", "avfoundation", "dshow"],
        help="ffmpeg input format for the microphone (default: AUDIO_FORMAT or pulse)",
    )
    p.add_argument(
        "--poll-interval",
        type=float,
        default=settings.poll_interval_s,
        help="Seconds between ready-signal polls (default: POLL_INTERVAL_S or 3)",
    )
    return p


def render(snapshot: SessionSnapshot) -> str:
    """One status line for the terminal."""
    if snapshot.display_mode in _MODE_LINES:
        return _MODE_LINES[snapshot.display_mode]
    parts = [snapshot.elapsed_display]
    if snapshot.display_mode == DisplayMode.RECORDING:
        parts.append("recording")
    elif snapshot.has_clip:
        parts.append("clip ready")
    if not snapshot.recording_enabled:
        parts.append("(camera unavailable)")
    return "  ".join(parts)


def build_controller(args: argparse.Namespace, settings: Settings, navigate) -> SessionController:
    settings = settings.model_copy(update={"poll_interval_s": args.poll_interval})
    capture = DeviceCaptureSource(
        DeviceCaptureConfig(
            ffmpeg_bin=settings.ffmpeg_bin,
            video_device=args.video_device,
            video_format=settings.video_format,
            audio_device=args.audio_device,
            audio_format=args.audio_format,
        )
    )
    return SessionController(
        gateway=InterviewGateway(base_url=args.base_url, timeout=settings.request_timeout),
        capture=capture,
        recorder=FFmpegRecorder(),
        player=SoundDevicePlayer(PlayerConfig(timeout_s=settings.playback_timeout_s)),
        settings=settings,
        navigate=navigate,
    )


async def run_session(argv: list[str] | None = None) -> None:
    """
    Run an interactive live interview session.

    Commands are read from stdin while polling and playback run on the loop.
    """
    settings = get_settings()
    logger = logging.getLogger(__name__)
    args = build_parser(settings).parse_args(argv)

    finished = asyncio.Event()
    last_line = ""

    def _navigate(route: str) -> None:
        print(f"\n-> results: {route}")
        finished.set()

    def _on_snapshot(snapshot: SessionSnapshot) -> None:
        nonlocal last_line
        line = render(snapshot)
        if line != last_line:
            print(f"[{snapshot.status.value}] {line}", flush=True)
            last_line = line

    controller = build_controller(args, settings, _navigate)
    controller.subscribe(_on_snapshot)

    logger.info(f"Connecting to interview service at {args.base_url}")
    async with controller:
        print(COMMANDS)
        while not finished.is_set():
            try:
                raw = await asyncio.to_thread(input, "> ")
            except EOFError:
                break
            cmd = raw.strip().lower()[:1]
            if cmd == "r":
                await controller.start_recording()
            elif cmd == "s":
                await controller.stop_recording()
            elif cmd == "u":
                await controller.upload()
            elif cmd == "e":
                await controller.finish()
            elif cmd == "q":
                break
            else:
                print(COMMANDS)


def main() -> None:
    """Main entry point for the application."""
    setup_logging()

    try:
        asyncio.run(run_session(sys.argv[1:]))
    except KeyboardInterrupt:
        print("\nSession terminated by user.")
        sys.exit(0)
    except Exception as e:
        logging.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
