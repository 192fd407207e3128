"""Monitoring infrastructure for PersonalFit"""
from personalfit.monitoring.prometheus_metrics import (
    metrics,
    record_request,
    track_xp_award,
    track_version_conflict,
    track_purchase,
    track_milestone_gems,
    track_penalty,
    track_missed_workout_sweep,
)

__all__ = [
    "metrics",
    "record_request",
    "track_xp_award",
    "track_version_conflict",
    "track_purchase",
    "track_milestone_gems",
    "track_penalty",
    "track_missed_workout_sweep",
]
