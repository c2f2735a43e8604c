"""Command-line controller: drive a capture unit from ``hosts.yaml`` over SSH.

Verbs are taken from the command line, or read one per line from stdin when
none are given::

    padelmotion-controller --host wrist-unit start-session \\
        "start-movement forehand right" stop-movement end-session
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable, Sequence

from ..config.app_config import AppPaths, HostInventory
from ..config.runtime import load_config
from ..core.errors import ChannelUnreachable
from ..core.models import Hand, MovementType
from ..remote.protocol import (
    END_SESSION,
    START_MOVEMENT,
    START_SESSION,
    STOP_MOVEMENT,
    RelayCommand,
)
from ..remote.relay import RelayController
from ..remote.ssh_channel import SSHRelayChannel

logger = logging.getLogger(__name__)

_VERBS = {
    "start-session": START_SESSION,
    "start-movement": START_MOVEMENT,
    "stop-movement": STOP_MOVEMENT,
    "end-session": END_SESSION,
}


def parse_verb(text: str) -> RelayCommand:
    """
    Parse ``start-session``, ``start-movement [type] [hand]``, ``stop-movement``
    or ``end-session``; raises ``ValueError`` on anything else.
    """
    parts = text.split()
    if not parts or parts[0].lower() not in _VERBS:
        raise ValueError(f"Unknown verb {text!r}; expected one of {', '.join(_VERBS)}")
    command = _VERBS[parts[0].lower()]
    if command != START_MOVEMENT:
        if len(parts) > 1:
            raise ValueError(f"{parts[0]} takes no arguments")
        return RelayCommand(command)
    if len(parts) > 3:
        raise ValueError("start-movement takes at most a movement type and a hand")
    movement_type = MovementType.from_tag(parts[1]) if len(parts) > 1 else MovementType.UNKNOWN
    hand = Hand.from_tag(parts[2]) if len(parts) > 2 else Hand.RIGHT
    return RelayCommand(command, movement_type=movement_type, hand=hand)


def run_verbs(controller: RelayController, verbs: Iterable[str], reply_timeout_s: float) -> int:
    """Send each verb and report its ack; returns the number of failed sends."""
    failures = 0
    for text in verbs:
        text = text.strip()
        if not text or text.startswith("#"):
            continue
        if text == "status":
            status = controller.status
            print(f"{status.title}: {status.description} (peer state: {controller.peer_state})")
            continue
        try:
            command = parse_verb(text)
        except ValueError as exc:
            print(f"error: {exc}", file=sys.stderr)
            failures += 1
            continue
        since = controller.ack_count
        try:
            controller.send(command)
        except ChannelUnreachable as exc:
            print(f"error: {exc}", file=sys.stderr)
            failures += 1
            continue
        ack = controller.wait_for_ack(command.command, reply_timeout_s, since=since)
        if ack is None:
            print(f"{command.command}: no acknowledgement within {reply_timeout_s:.1f} s")
        else:
            print(f"{ack.command}: {ack.state}")
    return failures


def main(argv: Sequence[str] | None = None) -> int:
    paths = AppPaths()
    parser = argparse.ArgumentParser(description="Send recording commands to a padelmotion capture unit.")
    parser.add_argument("verbs", nargs="*", help="Verbs to send (default: read from stdin)")
    parser.add_argument("--host", help="Unit name from hosts.yaml (default: first entry)")
    parser.add_argument("--hosts-file", type=Path, default=paths.config_dir / "hosts.yaml")
    parser.add_argument("--config", type=Path, default=paths.config_dir / "padelmotion.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg = load_config(args.config)
    host_cfg = HostInventory(args.hosts_file).find(args.host)
    if host_cfg is None:
        parser.error(f"No capture unit {args.host or '(any)'} in {args.hosts_file}")

    channel = SSHRelayChannel(
        host_cfg.to_remote_host(),
        base_path=host_cfg.base_path,
        listener=host_cfg.listener,
        listener_args=host_cfg.listener_args,
    )
    status = channel.open()
    logger.info("%s: %s", host_cfg.name, status.title)
    controller = RelayController(channel)
    try:
        verbs = args.verbs or sys.stdin
        failures = run_verbs(controller, verbs, cfg.relay_reply_timeout_s)
    except KeyboardInterrupt:
        failures = 0
    finally:
        channel.close()
    return 1 if failures else 0


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
