"""
pulse.services.analytics — PostHog analytics sink
==================================================

Fire-and-forget forwarding of :class:`AnalyticsRecord` objects to PostHog.

The PostHog client queues events and ships them from its own background
thread, so :meth:`AnalyticsSink.capture` never blocks the event loop.  A
failing capture is logged and dropped: analytics must never break an event
handler, and there is no retry.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from posthog import Posthog

from pulse.config import Secrets
from pulse.engine.records import AnalyticsRecord

logger = logging.getLogger(__name__)


class AnalyticsSink:
    """Thin wrapper around a PostHog client."""

    def __init__(self, client: Posthog) -> None:
        self.client = client
        self.captured = 0
        self.failed = 0

    @classmethod
    def from_secrets(cls, secrets: Secrets) -> AnalyticsSink:
        client = Posthog(secrets.posthog_api_key, host=secrets.posthog_host)
        logger.info("PostHog client configured for %s", secrets.posthog_host)
        return cls(client)

    def capture(self, record: AnalyticsRecord) -> bool:
        """Queue one record.  Returns False (and logs) if the client raised."""
        try:
            self.client.capture(
                event=record.event,
                distinct_id=record.distinct_id,
                properties=record.properties,
            )
        except Exception:
            self.failed += 1
            logger.exception(
                "PostHog capture failed for %s", record.event,
                extra={"event_type": record.event, "distinct_id": record.distinct_id},
            )
            return False
        self.captured += 1
        logger.debug("Captured %s for %s", record.event, record.distinct_id)
        return True

    def capture_all(self, records: Iterable[AnalyticsRecord]) -> int:
        """Queue every record; returns how many were accepted."""
        return sum(1 for record in records if self.capture(record))

    def shutdown(self) -> None:
        """Flush queued events and stop the client's worker thread."""
        try:
            self.client.shutdown()
        except Exception:
            logger.exception("PostHog shutdown failed")
