"""Relay between the controller and the capture unit.

:mod:`protocol` defines the JSON messages, :mod:`channel` the best-effort
transports (in-process loopback and line streams), :mod:`relay` both protocol
ends and :mod:`ssh_channel` the transport that launches the capture-unit
listener over SSH.
"""

from .channel import LoopbackChannel, RelayChannel, StreamChannel
from .protocol import Ack, ConnectivityStatus, RelayCommand, derive_status
from .relay import RelayController, RelayReceiver

__all__ = [
    "LoopbackChannel",
    "RelayChannel",
    "StreamChannel",
    "Ack",
    "ConnectivityStatus",
    "RelayCommand",
    "derive_status",
    "RelayController",
    "RelayReceiver",
]
