"""
Observability hooks for the plan engine.

track() emits analytics events, log_request() writes stage logs and
capture_exception() reports errors to Sentry. All three are fire-and-forget:
a failure inside a hook is logged and never reaches the calling operation.
"""
import logging
from typing import Any, Dict, Optional

import sentry_sdk

logger = logging.getLogger(__name__)


class Observability:
    """Analytics, request-stage logging and error reporting."""

    def __init__(self, event_logger: Optional[logging.Logger] = None):
        self.logger = event_logger or logger

    def track(self, event: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        payload = dict(metadata or {})
        try:
            self.logger.info(f"event: {event}", extra={"extra_fields": {"event": event, **payload}})
        except Exception:
            # Never fail requests due to telemetry.
            pass

        try:
            sentry_sdk.add_breadcrumb(category="plan_engine", message=event, level="info", data=payload)
        except Exception:
            pass

    def log_request(self, stage: str, request_id: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        """Structured log line for one stage of an operation."""
        try:
            self.logger.info(
                f"{stage} [{request_id}]",
                extra={"extra_fields": {"stage": stage, "request_id": request_id, **(metadata or {})}},
            )
        except Exception:
            pass

    def capture_exception(self, exc: BaseException) -> None:
        try:
            self.logger.error(f"Captured exception: {exc!r}", exc_info=exc)
            sentry_sdk.capture_exception(exc)
        except Exception:
            pass
