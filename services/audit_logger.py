"""
Audit Logger

Structured logging for user-impacting actions on plans and workouts.
Used for debugging, compliance, and tracking changes.

Format: JSON structured logs with:
- timestamp
- user_hash (anonymized user id)
- action
- request_id / ip_hash (hashed client IP, never the raw address)
- before/after state (where applicable)
- metadata
"""

import logging
import json
import hashlib
from datetime import datetime, timezone
from typing import Optional, Dict, Any

# Configure structured logger
audit_logger = logging.getLogger("kairos.audit")
audit_logger.setLevel(logging.INFO)

# Add handler if not already configured
if not audit_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('%(message)s'))
    audit_logger.addHandler(handler)


def _anonymize_id(user_id: str) -> str:
    """Hash user ID for privacy in logs."""
    return hashlib.sha256(str(user_id).encode()).hexdigest()[:12]


def log_audit(
    action: str,
    user_id: str,
    success: bool = True,
    request_id: Optional[str] = None,
    ip_hash: Optional[str] = None,
    before_state: Optional[Dict[str, Any]] = None,
    after_state: Optional[Dict[str, Any]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    error: Optional[str] = None
) -> Dict[str, Any]:
    """
    Log an audit event.

    Args:
        action: Action type (e.g., "plan.created", "workout.logged")
        user_id: Acting/owning user (will be anonymized)
        success: Whether the action succeeded
        request_id: Correlates with request-stage logs
        ip_hash: Hashed client IP
        before_state: State before action (optional)
        after_state: State after action (optional)
        metadata: Additional context
        error: Error message if failed

    Returns:
        The emitted event
    """
    event = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "action": action,
        "user_hash": _anonymize_id(user_id),
        "success": success,
    }

    if request_id:
        event["request_id"] = request_id

    if ip_hash:
        event["ip_hash"] = ip_hash

    if before_state:
        event["before"] = before_state

    if after_state:
        event["after"] = after_state

    if metadata:
        event["metadata"] = metadata

    if error:
        event["error"] = error

    # Log as JSON for structured parsing
    audit_logger.info(json.dumps(event, default=str))
    return event


# =============================================================================
# PLAN / WORKOUT AUDIT FUNCTIONS
# =============================================================================

def log_plan_created(
    user_id: str,
    plan_id: str,
    goal: str,
    frequency: int,
    workouts: int,
    request_id: Optional[str] = None,
    ip_hash: Optional[str] = None
) -> Dict[str, Any]:
    """Log plan creation event."""
    return log_audit(
        action="plan.created",
        user_id=user_id,
        request_id=request_id,
        ip_hash=ip_hash,
        after_state={
            "plan_id": plan_id,
            "goal": goal,
            "frequency": frequency,
            "workouts": workouts,
        }
    )


def log_workout_rescheduled(
    user_id: str,
    workout_id: str,
    old_date,
    new_date,
    request_id: Optional[str] = None,
    ip_hash: Optional[str] = None
) -> Dict[str, Any]:
    """Log a schedule change. Only scheduled_at moves."""
    return log_audit(
        action="workout.rescheduled",
        user_id=user_id,
        request_id=request_id,
        ip_hash=ip_hash,
        before_state={"workout_id": workout_id, "scheduled_at": old_date},
        after_state={"workout_id": workout_id, "scheduled_at": new_date},
    )


def log_workout_logged(
    user_id: str,
    workout_id: str,
    plan_id: str,
    sets: int,
    adherence: float,
    request_id: Optional[str] = None,
    ip_hash: Optional[str] = None
) -> Dict[str, Any]:
    """Log workout completion."""
    return log_audit(
        action="workout.logged",
        user_id=user_id,
        request_id=request_id,
        ip_hash=ip_hash,
        after_state={
            "workout_id": workout_id,
            "plan_id": plan_id,
            "sets": sets,
            "adherence": adherence,
        }
    )
