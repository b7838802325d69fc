"""
Rule-based mood classification heuristics.
"""
from __future__ import annotations
import logging
import random
from typing import Any, Optional, Sequence

from mood.features import extract_features
from mood.models import FeatureVector, MoodResult, MOODS

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = (0.70, 0.95)

MOOD_COLORS = {
    "happy": "#10B981",
    "sad": "#3B82F6",
    "excited": "#EC4899",
    "relaxed": "#8B5CF6",
    "focused": "#F59E0B",
}
NO_MOOD_COLOR = "#6B7280"


def clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


def mood_color(mood: Optional[str]) -> str:
    return MOOD_COLORS.get(mood or "", NO_MOOD_COLOR)


def classify(vec: FeatureVector) -> MoodResult:
    """
    Map a feature vector to a mood with an ordered threshold table.

    The ranges overlap, so the first matching rule wins:
      excited -> happy -> sad -> focused -> relaxed (default)
    """
    sr = vec.smile_ratio
    mc = vec.mouth_curvature
    eo = vec.eye_opening

    if sr > 2.8 and mc > 0.015 and eo > 0.075:
        mood, conf = "excited", min(0.95, 0.8 + (sr - 2.8) * 0.1)
    elif sr > 2.0 and mc > 0.008:
        mood, conf = "happy", min(0.95, 0.75 + (sr - 2.0) * 0.15)
    elif sr < 2.0 and mc < -0.003:
        mood, conf = "sad", min(0.9, 0.7 + abs(mc) * 25)
    elif 1.9 <= sr <= 2.3 and 0.055 <= eo <= 0.085 and abs(mc) < 0.012:
        mood, conf = "focused", 0.75
    else:
        mood, conf = "relaxed", 0.7

    return MoodResult(mood=mood, confidence=clamp01(conf))


def classify_fallback(rng: Optional[random.Random] = None) -> MoodResult:
    """Uniform random mood, used whenever real landmark data is unavailable."""
    r = rng or random
    lo, hi = FALLBACK_CONFIDENCE
    result = MoodResult(mood=r.choice(MOODS), confidence=r.uniform(lo, hi))
    logger.debug(f"[classifier] fallback mood={result.mood} confidence={result.confidence:.2f}")
    return result


def classify_landmarks(landmarks: Sequence[Any] | None,
                       rng: Optional[random.Random] = None) -> MoodResult:
    vec = extract_features(landmarks)
    if vec is None:
        return classify_fallback(rng)
    result = classify(vec)
    logger.debug(f"[classifier] mood={result.mood} confidence={result.confidence:.2f}")
    return result
