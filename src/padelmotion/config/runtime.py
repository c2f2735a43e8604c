"""Runtime configuration for capture, trajectory reconstruction and the relay."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import yaml

from ..analysis.trajectory import TrajectoryParams

_NESTED_BLOCKS = ("capture", "trajectory", "relay")


@dataclass(slots=True)
class CaptureConfig:
    """
    Tuning knobs for the capture unit and the offline reconstruction.

    The defaults match a 60 Hz wrist sensor and the stock trajectory heuristic.
    """

    sample_rate_hz: float = 60.0
    stream_stop_timeout_s: float = 1.0

    noise_floor: float = 0.02
    spring_constant: float = 2.0
    damping: float = 0.95
    position_scale: float = 10.0

    relay_reply_timeout_s: float = 2.0

    def sanitized(self) -> CaptureConfig:
        """Return a copy with every value clamped into a usable range."""
        return CaptureConfig(
            sample_rate_hz=min(1000.0, max(1.0, float(self.sample_rate_hz))),
            stream_stop_timeout_s=max(0.01, float(self.stream_stop_timeout_s)),
            noise_floor=max(0.0, float(self.noise_floor)),
            spring_constant=max(0.0, float(self.spring_constant)),
            damping=min(1.0, max(0.0, float(self.damping))),
            position_scale=max(1e-6, float(self.position_scale)),
            relay_reply_timeout_s=max(0.0, float(self.relay_reply_timeout_s)),
        )

    def trajectory_params(self) -> TrajectoryParams:
        return TrajectoryParams(
            noise_floor=self.noise_floor,
            spring_constant=self.spring_constant,
            damping=self.damping,
            scale=self.position_scale,
        )


def _recognized_fields() -> set[str]:
    """Return the dataclass field names accepted by :class:`CaptureConfig`."""
    return {f.name for f in fields(CaptureConfig)}


def _normalize_mapping(data: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """Flatten the ``capture``/``trajectory``/``relay`` blocks into one mapping."""
    merged: MutableMapping[str, Any] = {}
    for key, value in data.items():
        if key in _NESTED_BLOCKS and isinstance(value, Mapping):
            merged.update(value)
        else:
            merged[key] = value
    if "scale" in merged and "position_scale" not in merged:
        merged["position_scale"] = merged["scale"]
    if "reply_timeout_s" in merged and "relay_reply_timeout_s" not in merged:
        merged["relay_reply_timeout_s"] = merged["reply_timeout_s"]
    return merged


def config_from_mapping(data: Mapping[str, Any] | None) -> CaptureConfig:
    """Build :class:`CaptureConfig` from ``data`` (ignoring unknown keys)."""
    if not data:
        return CaptureConfig()
    normalized = _normalize_mapping(data)
    known = _recognized_fields()
    payload = {key: normalized[key] for key in normalized.keys() & known}
    return CaptureConfig(**payload).sanitized()


def load_config(path: str | Path | None) -> CaptureConfig:
    """
    Load configuration from ``path``.

    Missing files fall back to default :class:`CaptureConfig`.
    """
    if path is None:
        return CaptureConfig()
    cfg_path = Path(path)
    if not cfg_path.exists():
        return CaptureConfig()
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"Expected mapping in {cfg_path}, got {type(raw).__name__}")
    return config_from_mapping(raw)


def save_config(cfg: CaptureConfig, path: str | Path) -> None:
    """Write ``cfg`` as nested YAML blocks."""
    data = {
        "capture": {
            "sample_rate_hz": cfg.sample_rate_hz,
            "stream_stop_timeout_s": cfg.stream_stop_timeout_s,
        },
        "trajectory": {
            "noise_floor": cfg.noise_floor,
            "spring_constant": cfg.spring_constant,
            "damping": cfg.damping,
            "position_scale": cfg.position_scale,
        },
        "relay": {"relay_reply_timeout_s": cfg.relay_reply_timeout_s},
    }
    cfg_path = Path(path)
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    with cfg_path.open("w", encoding="utf-8") as fh:
        yaml.safe_dump(data, fh, default_flow_style=False, sort_keys=False)


__all__ = ["CaptureConfig", "config_from_mapping", "load_config", "save_config"]
