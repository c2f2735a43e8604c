"""Default application paths and the capture-unit host inventory."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

import yaml

DEFAULT_BASE_PATH = "~/padelmotion"
DEFAULT_LISTENER = "padelmotion-listener"


@dataclass
class AppPaths:
    """
    Commonly used paths for the controller and the capture unit.

    ``PADELMOTION_DATA_ROOT`` and ``PADELMOTION_LOG_DIR`` override the default
    ``data``/``logs`` folders relative to the repository root so that
    installed copies can store files elsewhere.
    """

    # repo_root points at the project root (one level above src/)
    repo_root: Path = Path(__file__).resolve().parents[3]
    data_root: Path = field(init=False)
    sessions: Path = field(init=False)
    exports: Path = field(init=False)
    logs: Path = field(init=False)
    config_dir: Path = field(init=False)

    def __post_init__(self) -> None:
        env_data_root = os.environ.get("PADELMOTION_DATA_ROOT")
        if env_data_root:
            self.data_root = Path(env_data_root).expanduser()
        else:
            self.data_root = self.repo_root / "data"

        env_logs_dir = os.environ.get("PADELMOTION_LOG_DIR")
        if env_logs_dir:
            self.logs = Path(env_logs_dir).expanduser()
        else:
            self.logs = self.repo_root / "logs"

        self.sessions = self.data_root / "sessions"
        self.exports = self.data_root / "exports"
        self.config_dir = self.repo_root / "src" / "padelmotion" / "config"

    def ensure(self) -> None:
        """Create directories if they do not yet exist."""
        for path in (self.data_root, self.sessions, self.exports, self.logs):
            path.mkdir(parents=True, exist_ok=True)


@dataclass
class HostConfig:
    """Normalized capture-unit entry derived from ``hosts.yaml``."""

    name: str
    host: str
    user: str
    port: int = 22
    base_path: str = DEFAULT_BASE_PATH
    listener: str = DEFAULT_LISTENER
    listener_args: str = ""
    password: Optional[str] = None

    def to_remote_host(self):
        """Return the :class:`padelmotion.remote.ssh_client.Host` for this entry."""
        from ..remote.ssh_client import Host as RemoteHost

        return RemoteHost(
            name=self.name,
            host=self.host,
            user=self.user,
            password=self.password,
            port=self.port,
        )


@dataclass
class HostInventory:
    """
    Capture units reachable over SSH, backed by ``hosts.yaml``.

    Expected structure (extra keys are allowed and preserved):

    .. code-block:: yaml

        units:
          - name: wrist-unit
            host: 192.168.0.42
            user: padel
            base_path: ~/padelmotion
            listener: padelmotion-listener
            listener_args: --replay recordings/forehand.jsonl
    """

    hosts_file: Path = field(default_factory=lambda: AppPaths().config_dir / "hosts.yaml")

    def load(self) -> Dict[str, Any]:
        """Load and return the raw mapping from ``hosts.yaml`` (or ``{}``)."""
        if not self.hosts_file.exists():
            return {}
        with self.hosts_file.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Expected mapping in {self.hosts_file}, got {type(raw).__name__}")
        return raw

    def save(self, data: Dict[str, Any]) -> None:
        """Write *data* back to ``hosts.yaml``."""
        self.hosts_file.parent.mkdir(parents=True, exist_ok=True)
        with self.hosts_file.open("w", encoding="utf-8") as fh:
            yaml.safe_dump(data, fh, default_flow_style=False, sort_keys=False)

    def list_hosts(self) -> List[Dict[str, Any]]:
        """Return copies of the entries under the ``units`` key."""
        data = self.load()
        units = data.get("units") or []
        return [dict(item) for item in units if isinstance(item, Mapping)]

    def save_hosts(self, hosts: Iterable[Mapping[str, Any]]) -> None:
        """Replace the ``units`` list, preserving other top-level keys."""
        existing = self.load()
        existing["units"] = [dict(h) for h in hosts]
        self.save(existing)

    def to_host_config(self, host_cfg: Mapping[str, Any]) -> HostConfig:
        """Convert a host mapping from YAML into a :class:`HostConfig`."""
        return HostConfig(
            name=str(host_cfg.get("name", host_cfg.get("host", "unit"))),
            host=str(host_cfg.get("host", "")),
            user=str(host_cfg.get("user", "padel")),
            port=int(host_cfg.get("port", 22)),
            base_path=str(host_cfg.get("base_path", DEFAULT_BASE_PATH)),
            listener=str(host_cfg.get("listener", DEFAULT_LISTENER)),
            listener_args=str(host_cfg.get("listener_args", "")),
            password=host_cfg.get("password"),
        )

    def find(self, name: str | None = None) -> Optional[HostConfig]:
        """Return the entry called ``name`` (or the first entry when ``name`` is None)."""
        for entry in self.list_hosts():
            cfg = self.to_host_config(entry)
            if name is None or cfg.name == name:
                return cfg
        return None


__all__ = ["DEFAULT_BASE_PATH", "DEFAULT_LISTENER", "AppPaths", "HostConfig", "HostInventory"]
