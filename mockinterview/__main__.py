#!/usr/bin/env python3
"""
Main entry point for the mock interview.
Allows running the package with: python -m mockinterview
"""
import argparse
import dataclasses
import sys

from .config import get_config
from .console import ConsolePrompter, ConsoleUI
from .infrastructure.audio.processing.capture import MicrophoneDevice
from .infrastructure.audio.processing.recorder import FfmpegRecorder
from .infrastructure.audio.speech import GoogleSpeechSynthesizer, GoogleStreamingTranscriber
from .interview.controller import SessionController
from .interview.dispatch import ControlLoop
from .interview.services import SilentSynthesizer, recognize_shared_link
from .interview.templates import LANGUAGES
from .utils import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mockinterview",
        description="Self-administered mock interview with spoken questions and recorded answers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands during the interview:
  /pause /resume /restart /submit /next /listen /type <text> /export /quit
        """
    )
    parser.add_argument(
        "--language", "-l",
        choices=sorted(LANGUAGES),
        default=None,
        help="Interview language (asked interactively when omitted)"
    )
    parser.add_argument(
        "--template", "-t",
        default=None,
        help="Template id: personal, professional, educational or custom"
    )
    parser.add_argument(
        "--answer-seconds",
        type=int,
        default=None,
        help="Seconds allowed per answer"
    )
    parser.add_argument(
        "--export-dir",
        default=None,
        help="Where interview archives are written"
    )
    parser.add_argument(
        "--link",
        default=None,
        help="A shared interview link (recognized, but sessions are not restored from it)"
    )
    parser.add_argument(
        "--no-capture",
        action="store_true",
        help="Do not use the microphone; answers are typed"
    )
    parser.add_argument(
        "--text",
        action="store_true",
        help="Print questions instead of speaking them"
    )
    return parser


def main(argv=None):
    """Command-line interface for the mock interview."""
    args = build_parser().parse_args(argv)

    # Load configuration from environment
    try:
        config = get_config()
    except ValueError as e:
        print(f"❌ Configuration Error: {e}")
        sys.exit(1)

    overrides = {}
    if args.answer_seconds is not None:
        if args.answer_seconds <= 0:
            print("❌ --answer-seconds must be positive")
            sys.exit(1)
        overrides["answer_seconds"] = args.answer_seconds
    if args.export_dir:
        overrides["export_dir"] = args.export_dir
    if args.no_capture:
        overrides["enable_capture"] = False
    if args.text:
        overrides["enable_tts"] = False
    config = dataclasses.replace(config, **overrides)

    log_file = setup_logging(config.log_file, config.log_level)
    print(f"📝 Logging to {log_file}")

    if args.link:
        shared_id = recognize_shared_link(args.link)
        if shared_id:
            print(f"🔗 Shared interview {shared_id} found. Loading shared interviews needs server-side "
                  "storage, so a new interview will start.")
        else:
            print("🔗 That link does not contain an interview id.")

    loop = ControlLoop()

    device = MicrophoneDevice()
    if config.enable_tts:
        synthesizer = GoogleSpeechSynthesizer(loop.post, config.google_application_credentials)
        print("🔊 Questions will be read aloud (use --text to disable speech)")
    else:
        synthesizer = SilentSynthesizer(loop.post)
        print("📝 Text Mode: Questions will be displayed as text only")

    controller = SessionController(
        loop,
        synthesizer,
        GoogleStreamingTranscriber(device, loop.post, config.google_application_credentials),
        FfmpegRecorder(device, loop.post),
        device=device,
        prompter=ConsolePrompter(),
        config=config,
    )

    ConsoleUI(controller, loop).run(language=args.language, template_id=args.template)
    print(f"📊 {controller.metrics.get_metrics()}")


if __name__ == "__main__":
    main()
