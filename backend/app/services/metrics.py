"""Prometheus metrics instrumentation for the signaling core.

Metrics are exposed via HTTP on port 8001 (configurable) when
METRICS_ENABLED is set.

Metrics exported:
- signals_routed_total: Counter of routed signals by type and outcome
- signal_connections_active: Gauge of registered WebSocket connections
- call_transitions_total: Counter of call state transitions by target status

Usage:
    from app.services.metrics import start_metrics_server, signals_routed

    start_metrics_server(port=8001)
    signals_routed.labels(signal_type='ring', outcome='delivered').inc()
"""

from prometheus_client import Counter, Gauge, start_http_server
import logging

from app.schemas.signal import SignalType, CONTACT_SIGNAL_TYPES

logger = logging.getLogger(__name__)

# Client passthrough types are free-form; keep label cardinality bounded
_KNOWN_SIGNAL_TYPES = frozenset({
    SignalType.RING,
    SignalType.ANSWERED,
    SignalType.REJECTED,
    SignalType.ENDED,
    SignalType.MISSED,
    SignalType.OFFER,
    SignalType.ANSWER,
    SignalType.ICE_CANDIDATE,
    SignalType.HANGUP,
}) | CONTACT_SIGNAL_TYPES

signals_routed = Counter(
    'signals_routed_total',
    'Signals handled by the signal hub',
    labelnames=['signal_type', 'outcome']  # outcome: delivered, queued, failed
)

active_connections_gauge = Gauge(
    'signal_connections_active',
    'Number of registered signaling WebSocket connections'
)

call_transitions = Counter(
    'call_transitions_total',
    'Call state machine transitions',
    labelnames=['status']
)


def signal_type_label(signal_type: str) -> str:
    return signal_type if signal_type in _KNOWN_SIGNAL_TYPES else "other"


def start_metrics_server(port: int = 8001):
    """Start Prometheus metrics HTTP server."""
    try:
        start_http_server(port)
        logger.info(f"✅ Metrics server started on port {port}")
    except Exception as e:
        logger.error(f"❌ Failed to start metrics server: {e}")
