from datetime import datetime

from app.models.telemetry import ViewItemEvent
from app.services.profile.constants import (
    DEFAULT_DWELL_MS,
    DEFAULT_SCROLL_DEPTH,
    DWELL_SATURATION_MS,
    RECENCY_HALF_LIFE_DAYS,
    SCROLL_SATURATION,
)
from app.shared.timeutils import ensure_aware


class EvidenceCalculator:
    """
    Calculates how much a single view_item event tells us about interest.

    Pure function: no side effects, easy to test.
    """

    @staticmethod
    def calculate_recency_multiplier(ts: datetime | None, now: datetime) -> float:
        """
        Half-life decay of an event's weight.

        Args:
            ts: When the event happened
            now: Reference time

        Returns:
            Multiplier (1.0 for fresh, 0.5 after one half-life)
        """
        if ts is None:
            return 1.0

        age_days = (ensure_aware(now) - ensure_aware(ts)).total_seconds() / 86400.0
        if age_days < 0:
            return 1.0  # Future date = treat as fresh

        return 0.5 ** (age_days / RECENCY_HALF_LIFE_DAYS)

    @staticmethod
    def dwell_ms(event: ViewItemEvent) -> float:
        dwell = event.payload.dwell_ms
        return DEFAULT_DWELL_MS if dwell is None else dwell

    @staticmethod
    def calculate_dwell_multiplier(event: ViewItemEvent) -> float:
        return min(1.0, EvidenceCalculator.dwell_ms(event) / DWELL_SATURATION_MS)

    @staticmethod
    def calculate_scroll_multiplier(event: ViewItemEvent) -> float:
        depth = event.payload.scroll_depth
        if depth is None:
            depth = DEFAULT_SCROLL_DEPTH
        return min(1.0, depth / SCROLL_SATURATION)

    @staticmethod
    def calculate_evidence_weight(event: ViewItemEvent, now: datetime) -> float:
        """
        Combined weight of a view: recency × dwell × scroll depth.

        Args:
            event: view_item event
            now: Reference time for decay

        Returns:
            Weight in [0, 1]
        """
        return (
            EvidenceCalculator.calculate_recency_multiplier(event.ts, now)
            * EvidenceCalculator.calculate_dwell_multiplier(event)
            * EvidenceCalculator.calculate_scroll_multiplier(event)
        )
