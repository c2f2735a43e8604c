"""Thin paramiko wrapper used to reach capture units over SSH."""

from __future__ import annotations

import logging
import shlex
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import paramiko

logger = logging.getLogger(__name__)


@dataclass
class Host:
    """Connection details for a capture unit (password or agent/key auth)."""

    name: str
    host: str
    user: str
    password: Optional[str] = None
    port: int = 22


class RemoteProcess:
    """
    A long-lived remote command with its stdin kept open.

    ``stdin``/``stdout``/``stderr`` are paramiko channel files. Closing the
    process closes stdin first so the remote side sees EOF and can shut down
    cleanly, then tears down the channel.
    """

    def __init__(self, stdin, stdout, stderr) -> None:
        self.stdin = stdin
        self.stdout = stdout
        self.stderr = stderr
        self._closed = False

    @property
    def channel(self) -> Optional[paramiko.Channel]:
        return getattr(self.stdout, "channel", None)

    @property
    def alive(self) -> bool:
        if self._closed:
            return False
        channel = self.channel
        return channel is not None and not channel.closed and not channel.exit_status_ready()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self.stdin.close()
            if self.channel is not None:
                self.channel.shutdown_write()
        except (OSError, EOFError, paramiko.SSHException) as exc:
            logger.debug("Error closing remote stdin: %s", exc)
        for stream in (self.stdout, self.stderr):
            try:
                stream.close()
            except (OSError, EOFError, paramiko.SSHException) as exc:
                logger.debug("Error closing remote stream: %s", exc)
        if self.channel is not None:
            self.channel.close()


class SSHClient:
    """Wrapper around :class:`paramiko.SSHClient` with lazy (re)connection."""

    def __init__(self, host: Host, *, timeout_s: float = 10.0) -> None:
        self.host = host
        self.timeout_s = float(timeout_s)
        self._client: paramiko.SSHClient = paramiko.SSHClient()
        self._client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

    # ------------------------------------------------------------------ connection
    @property
    def connected(self) -> bool:
        transport = self._client.get_transport()
        return bool(transport and transport.is_active())

    def _ensure_client(self) -> paramiko.SSHClient:
        if not self.connected:
            self.connect()
        return self._client

    def connect(self) -> None:
        if self.connected:
            return
        logger.info("Connecting to %s@%s:%s", self.host.user, self.host.host, self.host.port)
        use_keys = self.host.password is None
        self._client.connect(
            hostname=self.host.host,
            username=self.host.user,
            port=self.host.port,
            password=self.host.password,
            look_for_keys=use_keys,
            allow_agent=use_keys,
            timeout=self.timeout_s,
        )

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------ commands
    @staticmethod
    def _with_cwd(command: str, cwd: Optional[str]) -> str:
        if cwd:
            return f"cd {shlex.quote(cwd)} && {command}"
        return command

    def run(self, command: str, cwd: Optional[str] = None) -> Tuple[int, str, str]:
        """Run a short command to completion; returns ``(exit_code, stdout, stderr)``."""
        client = self._ensure_client()
        _, stdout, stderr = client.exec_command(self._with_cwd(command, cwd), timeout=self.timeout_s)
        out = stdout.read().decode("utf-8", errors="ignore")
        err = stderr.read().decode("utf-8", errors="ignore")
        return stdout.channel.recv_exit_status(), out, err

    def start_process(self, command: str, cwd: Optional[str] = None) -> RemoteProcess:
        """Start ``command`` and return it with stdin open for streaming input."""
        client = self._ensure_client()
        full_cmd = self._with_cwd(command, cwd)
        logger.info("Starting remote process on %s: %s", self.host.name, full_cmd)
        stdin, stdout, stderr = client.exec_command(full_cmd)
        return RemoteProcess(stdin, stdout, stderr)

    @contextmanager
    def sftp(self) -> Iterator[paramiko.SFTPClient]:
        """Context manager that yields an SFTP client."""
        client = self._ensure_client()
        sftp = client.open_sftp()
        try:
            yield sftp
        finally:
            sftp.close()

    def path_exists(self, remote_path: str) -> bool:
        """Return True if *remote_path* exists on the capture unit."""
        with self.sftp() as sftp:
            try:
                sftp.stat(remote_path)
            except IOError:
                return False
            else:
                return True


__all__ = ["Host", "RemoteProcess", "SSHClient"]
