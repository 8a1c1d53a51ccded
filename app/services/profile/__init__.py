"""
Profile inference.

Builds a preference profile from one anonymous session's signals. Every field
is derived independently and the result is a plain value: nothing here keeps
state between calls.
"""

from app.services.profile.cold_start import build_cold_start_profile
from app.services.profile.evidence import EvidenceCalculator
from app.services.profile.inference import ProfileInferenceEngine

__all__ = [
    "ProfileInferenceEngine",
    "EvidenceCalculator",
    "build_cold_start_profile",
]
