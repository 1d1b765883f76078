"""
Connection Management Module

Signal hub, connection registry and offline signal store.
"""
from .models import SignalConnection
from .registry import ConnectionRegistry
from .offline_store import OfflineSignalStore
from .hub import SignalHub, DeliveryOutcome, HubNotRunningError

# Singleton instances
offline_signal_store = OfflineSignalStore()
signal_hub = SignalHub(offline_store=offline_signal_store)

__all__ = [
    "SignalConnection",
    "ConnectionRegistry",
    "OfflineSignalStore",
    "SignalHub",
    "DeliveryOutcome",
    "HubNotRunningError",
    "offline_signal_store",
    "signal_hub",
]
