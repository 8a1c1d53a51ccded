import math
from collections.abc import Callable
from datetime import datetime

from loguru import logger

from app.core.constants import RECOMMENDATION_CATEGORIES
from app.models.profile import CostPreference, InferredProfile, RecommendationMode
from app.models.telemetry import (
    ContentThemeEvent,
    FilterApplyEvent,
    SessionSignal,
    ViewItemEvent,
)
from app.services.profile.cold_start import build_cold_start_profile, format_time_window
from app.services.profile.constants import (
    COLD_START_THRESHOLD,
    CONFIDENCE_EVENT_TYPES_SATURATION,
    CONFIDENCE_SIGNAL_SATURATION,
    CONFIDENCE_SPAN_SATURATION_HOURS,
    DEFAULT_DISTANCE_KM,
    DISTANCE_PERCENTILE,
    FREE_RATIO_FREE,
    FREE_RATIO_LOW,
    INDOOR_VIEW_RATIO,
    KID_SAFE_LEARNER_MIN,
    LIBRARY_CATEGORY,
    LIBRARY_DWELL_RATIO,
    LIBRARY_VIEW_SHARE,
    MIN_CONFIDENCE,
    NIGHT_AFTER_HOUR,
    NIGHT_BEFORE_HOUR,
    PARENT_HINT_FAMILY_MIN,
    PRIOR_CATEGORY_WEIGHTS,
    RAINY_OR_NIGHT_RATIO,
    TIME_WINDOW_END_CAP,
    TIME_WINDOW_SPAN_HOURS,
    UPDATE_ALPHA,
    UPDATE_CONFIDENCE_STEP,
)
from app.services.profile.evidence import EvidenceCalculator
from app.shared.markers import is_free_price, is_rainy
from app.shared.timeutils import ensure_aware, local_now


def normalize_weights(weights: dict[str, float]) -> dict[str, float]:
    """Scale weights to sum to 1. Returns an empty dict when there is no weight at all."""
    total = sum(weights.values())
    if total <= 0:
        return {}
    return {key: value / total for key, value in weights.items()}


def merge_weights(existing: dict[str, float], new: dict[str, float], alpha: float) -> dict[str, float]:
    """Exponential blend of two weight maps. Keys only in ``new`` enter at alpha * new."""
    merged = dict(existing)
    for key, value in new.items():
        if key in merged:
            merged[key] = merged[key] * (1 - alpha) + value * alpha
        else:
            merged[key] = value * alpha
    return merged


class ProfileInferenceEngine:
    """
    Turns a session's signals into an InferredProfile.

    Every field is derived independently from the same signal list. Sessions
    with fewer than COLD_START_THRESHOLD signals get a heuristic profile built
    from the clock alone. The engine holds no state besides the injected clock.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None):
        self._clock = clock or local_now
        self.evidence_calculator = EvidenceCalculator()

    def infer_profile(self, signals: list[SessionSignal]) -> InferredProfile:
        now = self._clock()
        if len(signals) < COLD_START_THRESHOLD:
            return build_cold_start_profile(signals, now)

        return InferredProfile(
            interest_weights=self._interest_weights(signals, now),
            category_weights=self._category_weights(signals),
            cost_preference=self._cost_preference(signals),
            indoor_preference=self._indoor_preference(signals),
            quiet_needed=self._quiet_needed(signals),
            distance_km_tolerance=self._distance_tolerance(signals),
            time_window=self._time_window(now),
            mode=self._mode(signals),
            confidence=self._confidence(signals),
        )

    def update_profile(self, profile: InferredProfile, new_signal: SessionSignal) -> InferredProfile:
        """
        Fold a single new signal into an existing profile.

        The signal is inferred on its own (always the cold-start path) and
        blended in with UPDATE_ALPHA. Indoor and quiet preferences are held,
        confidence only grows.
        """
        observed = self.infer_profile([new_signal])
        alpha = UPDATE_ALPHA

        return InferredProfile(
            interest_weights=merge_weights(profile.interest_weights, observed.interest_weights, alpha),
            category_weights=merge_weights(profile.category_weights, observed.category_weights, alpha),
            cost_preference=observed.cost_preference,
            indoor_preference=profile.indoor_preference,
            quiet_needed=profile.quiet_needed,
            distance_km_tolerance=profile.distance_km_tolerance * (1 - alpha)
            + observed.distance_km_tolerance * alpha,
            time_window=observed.time_window,
            mode=observed.mode,
            confidence=min(1.0, profile.confidence + UPDATE_CONFIDENCE_STEP),
        )

    def _interest_weights(self, signals: list[SessionSignal], now: datetime) -> dict[str, float]:
        weights: dict[str, float] = {}
        for signal in signals:
            event = signal.event
            if not isinstance(event, ViewItemEvent):
                continue
            weight = self.evidence_calculator.calculate_evidence_weight(event, now)
            for tag in event.payload.tags:
                weights[tag] = weights.get(tag, 0.0) + weight
        return normalize_weights(weights)

    def _category_weights(self, signals: list[SessionSignal]) -> dict[str, float]:
        weights = dict.fromkeys(RECOMMENDATION_CATEGORIES, 0.0)
        for signal in signals:
            event = signal.event
            if isinstance(event, ViewItemEvent):
                if event.payload.category in weights:
                    weights[event.payload.category] += self.evidence_calculator.dwell_ms(event) / 1000.0
            elif isinstance(event, ContentThemeEvent):
                if event.payload.category in weights:
                    weights[event.payload.category] += 1.0

        normalized = normalize_weights(weights)
        return normalized or dict(PRIOR_CATEGORY_WEIGHTS)

    def _cost_preference(self, signals: list[SessionSignal]) -> CostPreference:
        free_count = 0
        paid_count = 0
        for signal in signals:
            event = signal.event
            if isinstance(event, FilterApplyEvent) and event.payload.free_only:
                free_count += 1
            elif isinstance(event, ViewItemEvent) and event.payload.price:
                if is_free_price(event.payload.price):
                    free_count += 1
                else:
                    paid_count += 1

        free_ratio = free_count / (free_count + paid_count + 1)
        if free_ratio > FREE_RATIO_FREE:
            return "free"
        if free_ratio > FREE_RATIO_LOW:
            return "low"
        return "any"

    def _indoor_preference(self, signals: list[SessionSignal]) -> bool:
        rainy_or_night = 0
        indoor_views = 0
        outdoor_views = 0
        for signal in signals:
            context = signal.context
            if is_rainy(context.weather) or context.hour > NIGHT_AFTER_HOUR or context.hour < NIGHT_BEFORE_HOUR:
                rainy_or_night += 1

            event = signal.event
            if isinstance(event, ViewItemEvent):
                if event.payload.indoor is True:
                    indoor_views += 1
                elif event.payload.indoor is False:
                    outdoor_views += 1

        rainy_ratio = rainy_or_night / (len(signals) + 1)
        indoor_ratio = indoor_views / (indoor_views + outdoor_views + 1)
        return rainy_ratio > RAINY_OR_NIGHT_RATIO and indoor_ratio > INDOOR_VIEW_RATIO

    def _quiet_needed(self, signals: list[SessionSignal]) -> bool:
        library_dwells: list[float] = []
        other_dwells: list[float] = []
        for signal in signals:
            event = signal.event
            if not isinstance(event, ViewItemEvent):
                continue
            dwell = self.evidence_calculator.dwell_ms(event)
            if event.payload.category == LIBRARY_CATEGORY:
                library_dwells.append(dwell)
            else:
                other_dwells.append(dwell)

        total_views = len(library_dwells) + len(other_dwells)
        if total_views == 0:
            return False

        avg_library = sum(library_dwells) / len(library_dwells) if library_dwells else 0.0
        avg_other = sum(other_dwells) / len(other_dwells) if other_dwells else 0.0
        library_share = len(library_dwells) / (total_views + 1)
        return library_share > LIBRARY_VIEW_SHARE and avg_library > avg_other * LIBRARY_DWELL_RATIO

    def _distance_tolerance(self, signals: list[SessionSignal]) -> float:
        distances: list[float] = []
        for signal in signals:
            event = signal.event
            if isinstance(event, (ViewItemEvent, FilterApplyEvent)):
                distance = event.payload.distance_km
                if distance is not None and distance > 0:
                    distances.append(distance)

        if not distances:
            return DEFAULT_DISTANCE_KM

        # Index floor(0.8 * n) of the sorted sample, always within bounds for n >= 1
        distances.sort()
        index = min(len(distances) - 1, math.floor(len(distances) * DISTANCE_PERCENTILE))
        return distances[index]

    def _mode(self, signals: list[SessionSignal]) -> RecommendationMode:
        kid_safe = sum(1 for signal in signals if signal.event.name == "kid_safe_interaction")
        if kid_safe > KID_SAFE_LEARNER_MIN:
            return "learner"

        parent_hints = sum(1 for signal in signals if signal.event.payload.parent_hint_expanded)
        if parent_hints > PARENT_HINT_FAMILY_MIN:
            return "family"
        return "learner"

    def _time_window(self, now: datetime) -> str:
        hour = now.hour
        if 9 <= hour <= 11:
            return format_time_window(hour, 17)
        if 13 <= hour <= 15:
            return format_time_window(hour, 18)
        return format_time_window(hour, min(TIME_WINDOW_END_CAP, hour + TIME_WINDOW_SPAN_HOURS))

    def _confidence(self, signals: list[SessionSignal]) -> float:
        event_types = {signal.event.name for signal in signals}

        timestamps = [ensure_aware(signal.event.ts) for signal in signals if signal.event.ts is not None]
        span_hours = 0.0
        if len(timestamps) > 1:
            span_hours = (max(timestamps) - min(timestamps)).total_seconds() / 3600.0

        signal_score = min(1.0, len(signals) / CONFIDENCE_SIGNAL_SATURATION)
        diversity_score = min(1.0, len(event_types) / CONFIDENCE_EVENT_TYPES_SATURATION)
        span_score = min(1.0, span_hours / CONFIDENCE_SPAN_SATURATION_HOURS)

        confidence = max(MIN_CONFIDENCE, (signal_score + diversity_score + span_score) / 3)
        logger.debug(
            f"Profile confidence {confidence:.2f} from {len(signals)} signals, "
            f"{len(event_types)} event types, {span_hours:.1f}h span"
        )
        return confidence
