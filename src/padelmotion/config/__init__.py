"""Configuration objects and helpers for padelmotion.

This package knows how to load/save the YAML descriptors used by the
controller and the capture unit:
- ``hosts.yaml`` with the capture units reachable over SSH
- a runtime file with sampling, trajectory and relay tuning
The resulting typed dataclasses (see :mod:`runtime`) configure the sample
stream, the reconstructor and the relay consistently.
"""

from .runtime import CaptureConfig, config_from_mapping, load_config

__all__ = ["CaptureConfig", "config_from_mapping", "load_config"]
