#!/usr/bin/env python3
"""
CLI entrypoint for ingesting one chat export for one participant.
"""

from __future__ import annotations
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ingest_exceptions import ConfigError, ValidationError
from config import PipelineConfig
from chat_export import validate_export
from ingest import PipelineContext, UploadRequest, UploadService
from interfaces import Stage
from tqdm import tqdm
import argparse
import logging
import time


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Embed one participant's chat messages into Pinecone"
    )
    parser.add_argument("--file", required=True, help="Chat export .txt file")
    parser.add_argument(
        "--participant",
        help="Sender name exactly as it appears in the export",
    )
    parser.add_argument(
        "--display-name",
        help="Name to show for the session (defaults to --participant)",
    )
    parser.add_argument("--owner-id", help="Optional owner id stored on the session")
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Only run the format pre-check; no OpenAI or Pinecone calls.",
    )
    parser.add_argument(
        "--poll-seconds",
        type=float,
        default=0.5,
        help="Progress polling interval",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable progress bar display",
    )
    return parser.parse_args(argv)


def _read_export(path: str) -> str:
    return Path(path).read_text(encoding="utf-8", errors="replace")


def run_validate_only(text: str) -> int:
    report = validate_export(text)
    if report.is_valid:
        print("Export looks valid.")
        return 0
    for error in report.errors:
        print(f"error: {error}")
    for suggestion in report.suggestions:
        print(f"hint: {suggestion}")
    return 1


def follow_progress(service: UploadService, upload_id: str, *,
                    poll_seconds: float, show_bar: bool) -> str:
    """Poll until the upload is terminal; returns the last stage value."""
    pbar = tqdm(total=100, desc="Uploading", unit="%") if show_bar else None
    last_progress = 0
    state = None
    try:
        while True:
            state = service.get_progress(upload_id)
            if state is None:
                logging.error("Progress record for %s disappeared", upload_id)
                return Stage.ERROR.value
            if pbar is not None:
                if state.progress > last_progress:
                    pbar.update(state.progress - last_progress)
                    last_progress = state.progress
                pbar.set_postfix_str(state.message)
            else:
                logging.info("[%s %d%%] %s", state.stage.value,
                             state.progress, state.message)
            if state.stage.is_terminal:
                return state.stage.value
            time.sleep(poll_seconds)
    finally:
        if pbar is not None:
            pbar.close()
        if state is not None and state.stage is Stage.ERROR:
            print(f"Upload failed: {state.message}")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        text = _read_export(args.file)
    except OSError as error:
        logging.error("Could not read %s: %s", args.file, error)
        return 1

    if args.validate_only:
        return run_validate_only(text)

    if not args.participant:
        logging.error("--participant is required unless --validate-only is set")
        return 1

    try:
        config = PipelineConfig.from_env()
        config.validate()
    except ConfigError as error:
        logging.error("Configuration error: %s", error)
        return 1

    ctx = PipelineContext(config)
    service = UploadService.from_context(ctx)

    try:
        accepted = service.start_upload(UploadRequest(
            file_content=text,
            selected_participant=args.participant,
            display_name=args.display_name or args.participant,
            owner_id=args.owner_id,
        ))
    except ValidationError as error:
        ctx.logger.error("Upload rejected: %s", error)
        service.shutdown()
        return 1

    ctx.logger.info("Session %s, upload %s", accepted.session_id, accepted.upload_id)
    try:
        stage = follow_progress(
            service,
            accepted.upload_id,
            poll_seconds=args.poll_seconds,
            show_bar=not args.no_progress,
        )
    except KeyboardInterrupt:
        ctx.logger.warning("Interrupted; cancelling upload %s", accepted.upload_id)
        service.cancel(accepted.upload_id)
        service.shutdown(wait=True)
        return 1

    service.shutdown(wait=True)
    ctx.logger.info("Stats: %s", ctx.stats.get_stats())
    return 0 if stage == Stage.COMPLETE.value else 1


if __name__ == "__main__":
    raise SystemExit(main())
