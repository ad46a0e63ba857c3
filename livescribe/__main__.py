"""Command-line live transcription session."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from .audio.capture import SoundDeviceSource
from .config import PRESETS, get_settings
from .errors import DeviceError
from .services.logger import LogBuffer
from .services.network import HttpExtractionClient, HttpTranscriptionClient
from .services.session import RecordingSession
from .store.document_store import DocumentStore
from .store.settings_store import SettingsStore
from .store.transcript_store import TranscriptStore


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="livescribe", description="Live microphone transcription")
    parser.add_argument("--preset", choices=sorted(PRESETS), help="Chunking preset (default from settings)")
    parser.add_argument("--language", help="Language hint passed to the transcription service")
    parser.add_argument("--server", help="Base URL of the transcription/extraction server")
    parser.add_argument("--device", help="Input device name or index")
    parser.add_argument("--cv", action="store_true", help="Extract a structured CV from the transcript")
    parser.add_argument("--save", metavar="TITLE", help="Save the extracted CV under TITLE when stopping")
    parser.add_argument("--export", action="store_true", help="Write .txt and .json transcript exports")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    base = get_settings()
    data_dir = Path(base.data_dir)
    settings_store = SettingsStore(data_dir / "settings.json")
    if args.preset:
        settings_store.update(preset=args.preset)
    if args.server:
        settings_store.update(server_url=args.server)
    if args.language:
        settings_store.update(language=args.language)
    settings = settings_store.client_settings(base)
    config = settings_store.pipeline_config()

    logger = LogBuffer(settings.log_history)
    transcriber = HttpTranscriptionClient(settings)
    extractor = HttpExtractionClient(settings) if (args.cv or args.save) else None
    device = int(args.device) if args.device and args.device.isdigit() else args.device
    session = RecordingSession(
        SoundDeviceSource(config, device=device),
        transcriber,
        config=config,
        extractor=extractor,
        language=settings.language,
        logger=logger,
    )

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass

    try:
        await session.start()
    except DeviceError as exc:
        print(f"Microphone unavailable: {exc}", file=sys.stderr)
        await transcriber.close()
        if extractor:
            await extractor.close()
        return 2

    print("Recording... press Ctrl+C to stop.", file=sys.stderr)
    printed = 0
    try:
        while not stop.is_set():
            segments = session.assembler.segments
            for segment in segments[printed:]:
                print(segment.text, flush=True)
            printed = len(segments)
            try:
                await asyncio.wait_for(stop.wait(), timeout=0.25)
            except asyncio.TimeoutError:
                continue
    finally:
        await session.stop()
        for segment in session.assembler.segments[printed:]:
            print(segment.text, flush=True)
        await transcriber.close()
        if extractor:
            await extractor.close()

    if args.save:
        doc_id = session.save_document(DocumentStore(data_dir / "documents.json"), args.save)
        print(f"Saved document {doc_id} ({session.assembler.completion}% complete)", file=sys.stderr)
    if args.export and session.assembler.segments:
        store = TranscriptStore(data_dir / "transcripts")
        txt = store.save_text(session.assembler.segments)
        js = store.save_json(session.assembler.segments)
        print(f"Exported {txt} and {js}", file=sys.stderr)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
