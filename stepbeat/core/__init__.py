"""Core services: cadence sampling, tempo targeting, queue reconciliation, Spotify adapters."""
from stepbeat.core.queue_reconciler import QueueReconciler
from stepbeat.core.tracking_service import TrackingService

__all__ = ["QueueReconciler", "TrackingService"]
