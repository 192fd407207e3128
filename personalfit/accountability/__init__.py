"""
Accountability rules for PersonalFit

Penalty scoring for missed workouts. The ledger itself lives in
services.accountability_service.
"""

from personalfit.accountability.severity import calculate_penalty_severity

__all__ = ["calculate_penalty_severity"]
