"""Capture-unit listener: relay commands on stdin, acknowledgements on stdout.

The main thread is the manager's owner. A reader thread decodes stdin lines
and marshals each command onto the owner; on EOF the open session is ended
(and saved) before the process exits. Logging goes to stderr so stdout only
carries protocol messages.
"""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from pathlib import Path
from typing import Optional, Sequence, TextIO

from ..config.app_config import AppPaths
from ..config.runtime import CaptureConfig, load_config
from ..core.capture_manager import CaptureSessionManager
from ..core.owner import OwnerContext
from ..core.sample_stream import SampleStream
from ..dataio.session_store import DirectorySessionStore
from ..sensors.source import LineSource, SensorSource, UnavailableSource
from .channel import StreamChannel
from .relay import RelayReceiver

logger = logging.getLogger(__name__)


def build_manager(
    source: SensorSource,
    sessions_dir: Path,
    cfg: CaptureConfig,
    owner: Optional[OwnerContext] = None,
) -> CaptureSessionManager:
    stream = SampleStream(
        source,
        rate_hz=cfg.sample_rate_hz,
        stop_timeout_s=cfg.stream_stop_timeout_s,
    )
    return CaptureSessionManager(stream, DirectorySessionStore(sessions_dir), owner=owner)


def serve(manager: CaptureSessionManager, reader: TextIO, writer: TextIO) -> int:
    """
    Run the listener until ``reader`` reaches EOF.

    Must be called on the manager's owner thread. Returns the number of
    messages dispatched.
    """
    owner = manager.owner
    owner.require_owner("serve")
    channel = StreamChannel(reader, writer)
    RelayReceiver(manager, channel)
    result = {"dispatched": 0}

    def _pump() -> None:
        try:
            result["dispatched"] = channel.serve()
        finally:
            owner.submit(owner.stop)

    pump = threading.Thread(target=_pump, name="relay-stdin", daemon=True)
    pump.start()
    owner.run_forever()
    pump.join(1.0)

    final = manager.shutdown()
    if final is not None and final.error is not None:
        logger.error("Final session could not be saved: %s", final.error)
    channel.close()
    return result["dispatched"]


def main(argv: Sequence[str] | None = None) -> int:
    paths = AppPaths()
    parser = argparse.ArgumentParser(description="padelmotion capture-unit relay listener")
    parser.add_argument("--replay", type=Path, help="JSONL/CSV motion recording to replay as the sensor")
    parser.add_argument("--no-loop", action="store_true", help="Play the replay file once instead of looping")
    parser.add_argument("--data-root", type=Path, default=paths.sessions, help="Directory for saved sessions")
    parser.add_argument("--config", type=Path, default=paths.config_dir / "padelmotion.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg = load_config(args.config)
    source: SensorSource
    if args.replay is not None:
        source = LineSource(args.replay, loop=not args.no_loop, period_s=1.0 / cfg.sample_rate_hz)
    else:
        source = UnavailableSource("No motion sensor on this host; pass --replay")

    manager = build_manager(source, args.data_root, cfg)
    logger.info("Listening for relay commands (sessions -> %s)", args.data_root)
    serve(manager, sys.stdin, sys.stdout)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
