"""Relay channel that drives a capture-unit listener over SSH.

The controller launches ``padelmotion-listener`` on the capture unit and keeps
its stdin open: commands are written as JSON lines, acknowledgements are read
back from stdout on a background thread.
"""

from __future__ import annotations

import logging
import shlex
import threading
from pathlib import PurePosixPath
from typing import Any, Mapping, Optional

import paramiko

from ..core.errors import ChannelUnreachable, MalformedCommand
from .channel import MessageHandler
from .protocol import ConnectivityStatus, decode_line, derive_status, encode_message
from .ssh_client import Host, RemoteProcess, SSHClient

logger = logging.getLogger(__name__)

DEFAULT_LISTENER = "padelmotion-listener"


class SSHRelayChannel:
    """
    Connectivity is derived as follows:

    * supported: always (paramiko is available),
    * paired: a host name is configured,
    * installed: the listener path exists on the unit (checked by :meth:`open`),
    * reachable: the SSH transport is up and the listener is still running.
    """

    def __init__(
        self,
        host: Host,
        *,
        base_path: str = "~/padelmotion",
        listener: str = DEFAULT_LISTENER,
        listener_args: str = "",
        client: SSHClient | None = None,
    ) -> None:
        self.host = host
        self.base_path = PurePosixPath(base_path)
        self.listener = listener
        self.listener_args = listener_args
        self.client = client or SSHClient(host)
        self._handler: Optional[MessageHandler] = None
        self._process: Optional[RemoteProcess] = None
        self._reader: Optional[threading.Thread] = None
        self._installed: Optional[bool] = None
        self._write_lock = threading.Lock()

    # ------------------------------------------------------------------ status
    def set_handler(self, handler: Optional[MessageHandler]) -> None:
        self._handler = handler

    def status(self) -> ConnectivityStatus:
        process = self._process
        return derive_status(
            supported=True,
            paired=bool(self.host.host),
            installed=self._installed is not False,
            reachable=self.client.connected and process is not None and process.alive,
        )

    # ------------------------------------------------------------------ lifecycle
    def _listener_path(self) -> Optional[str]:
        """Remote path checked for the listener, or None for a PATH command."""
        if "/" in self.listener:
            return str(self.base_path / self.listener)
        return None

    def open(self) -> ConnectivityStatus:
        """Connect, check the listener and start it; returns the resulting status."""
        if not self.host.host:
            return self.status()
        try:
            self.client.connect()
            listener_path = self._listener_path()
            if listener_path is not None:
                self._installed = self.client.path_exists(listener_path)
            else:
                code, _, _ = self.client.run(f"command -v {shlex.quote(self.listener)}")
                self._installed = code == 0
            if not self._installed:
                logger.warning("Listener %s not found on %s", self.listener, self.host.name)
                return self.status()

            command = " ".join([shlex.quote(self.listener), self.listener_args]).strip()
            self._process = self.client.start_process(command, cwd=self.base_path.as_posix())
        except (OSError, paramiko.SSHException) as exc:
            logger.error("Cannot reach %s: %s", self.host.name, exc)
            return self.status()

        self._reader = threading.Thread(target=self._read_loop, name=f"relay-ssh-{self.host.name}", daemon=True)
        self._reader.start()
        stderr_thread = threading.Thread(target=self._log_stderr, name=f"relay-ssh-err-{self.host.name}", daemon=True)
        stderr_thread.start()
        return self.status()

    def close(self) -> None:
        process, self._process = self._process, None
        if process is not None:
            process.close()
        reader = self._reader
        if reader is not None and reader is not threading.current_thread():
            reader.join(2.0)
        self._reader = None
        self.client.close()

    # ------------------------------------------------------------------ io
    def send(self, message: Mapping[str, Any]) -> None:
        process = self._process
        if process is None or not process.alive:
            raise ChannelUnreachable(f"{self.host.name}: listener is not running")
        line = encode_message(message) + "\n"
        with self._write_lock:
            try:
                process.stdin.write(line)
                process.stdin.flush()
            except (OSError, EOFError, paramiko.SSHException) as exc:
                raise ChannelUnreachable(f"{self.host.name}: send failed: {exc}") from exc

    def _read_loop(self) -> None:
        process = self._process
        if process is None:
            return
        try:
            for raw in iter(process.stdout.readline, ""):
                if isinstance(raw, bytes):
                    raw = raw.decode("utf-8", errors="ignore")
                if not raw.strip():
                    continue
                try:
                    message = decode_line(raw)
                except MalformedCommand:
                    logger.debug("Listener output: %s", raw.rstrip())
                    continue
                handler = self._handler
                if handler is None:
                    continue
                try:
                    handler(message)
                except Exception:
                    logger.exception("Relay handler failed for %r", message)
        except (OSError, EOFError, paramiko.SSHException) as exc:
            logger.warning("Lost listener output from %s: %s", self.host.name, exc)
        logger.info("Listener on %s closed its output", self.host.name)

    def _log_stderr(self) -> None:
        process = self._process
        if process is None:
            return
        try:
            for raw in iter(process.stderr.readline, ""):
                if isinstance(raw, bytes):
                    raw = raw.decode("utf-8", errors="ignore")
                text = raw.rstrip("\r\n")
                if text:
                    logger.info("[%s] %s", self.host.name, text)
        except (OSError, EOFError, paramiko.SSHException) as exc:
            logger.debug("stderr reader stopped: %s", exc)


__all__ = ["DEFAULT_LISTENER", "SSHRelayChannel"]
