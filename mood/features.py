"""
Face-mesh geometry features for mood classification.
"""
from __future__ import annotations
import math
import logging
from typing import Any, Optional, Sequence, Tuple

import numpy as np

from mood.models import FeatureVector

logger = logging.getLogger(__name__)

# MediaPipe Face Mesh landmark indices
LEFT_MOUTH_CORNER = 61
RIGHT_MOUTH_CORNER = 291
UPPER_LIP_TOP = 13
UPPER_LIP_BOTTOM = 14
LOWER_LIP_TOP = 17
LOWER_LIP_BOTTOM = 18
LEFT_EYE_INNER = 33
LEFT_EYE_OUTER = 133
RIGHT_EYE_INNER = 362
RIGHT_EYE_OUTER = 263
LEFT_EYEBROW = 107
RIGHT_EYEBROW = 336
NOSE_TIP = 4
NOSE_BRIDGE = 19

REFERENCE_INDICES: Tuple[int, ...] = (
    LEFT_MOUTH_CORNER, RIGHT_MOUTH_CORNER,
    UPPER_LIP_TOP, UPPER_LIP_BOTTOM, LOWER_LIP_TOP, LOWER_LIP_BOTTOM,
    LEFT_EYE_INNER, LEFT_EYE_OUTER, RIGHT_EYE_INNER, RIGHT_EYE_OUTER,
    LEFT_EYEBROW, RIGHT_EYEBROW,
    NOSE_TIP, NOSE_BRIDGE,
)

MIN_LANDMARKS = 200
MIN_EYE_DISTANCE = 0.01
SMILE_EPS = 0.001


def _xy(point: Any) -> Optional[Tuple[float, float]]:
    """Coordinates of a keypoint given as an object with x/y, a mapping, or a tuple."""
    if point is None:
        return None
    if isinstance(point, dict):
        x, y = point.get("x"), point.get("y")
    elif isinstance(point, (tuple, list, np.ndarray)):
        if len(point) < 2:
            return None
        x, y = point[0], point[1]
    else:
        x, y = getattr(point, "x", None), getattr(point, "y", None)
    if x is None or y is None:
        return None
    x, y = float(x), float(y)
    if math.isnan(x) or math.isnan(y):
        return None
    return x, y


def _dist(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def extract_features(landmarks: Sequence[Any] | None) -> Optional[FeatureVector]:
    """
    Derive the normalized feature vector from one face's landmark set.

    Args:
        landmarks: Face-mesh keypoints indexed by landmark id (468/478 for MediaPipe).

    Returns:
        FeatureVector, or None when the landmark set is unusable: too few points,
        a missing reference point, or an inter-eye distance below MIN_EYE_DISTANCE.
    """
    if landmarks is None or len(landmarks) < MIN_LANDMARKS:
        logger.debug(f"[features] insufficient landmarks: {0 if landmarks is None else len(landmarks)}")
        return None

    pts = {}
    try:
        for idx in REFERENCE_INDICES:
            p = _xy(landmarks[idx]) if idx < len(landmarks) else None
            if p is None:
                logger.debug(f"[features] missing reference landmark {idx}")
                return None
            pts[idx] = p
    except (TypeError, ValueError):
        logger.debug("[features] malformed landmark coordinates")
        return None

    eye_distance = _dist(pts[LEFT_EYE_INNER], pts[RIGHT_EYE_INNER])
    if not eye_distance >= MIN_EYE_DISTANCE:
        logger.debug(f"[features] degenerate eye distance={eye_distance:.4f}")
        return None

    mouth_width = _dist(pts[LEFT_MOUTH_CORNER], pts[RIGHT_MOUTH_CORNER]) / eye_distance

    lip_top_y = (pts[UPPER_LIP_TOP][1] + pts[UPPER_LIP_BOTTOM][1]) / 2
    lip_bottom_y = (pts[LOWER_LIP_TOP][1] + pts[LOWER_LIP_BOTTOM][1]) / 2
    mouth_height = abs(lip_bottom_y - lip_top_y) / eye_distance
    smile_ratio = mouth_width / (mouth_height + SMILE_EPS)

    # corners vs. lip center, in image y (grows downward)
    corners_y = (pts[LEFT_MOUTH_CORNER][1] + pts[RIGHT_MOUTH_CORNER][1]) / 2
    lip_center_y = (lip_top_y + lip_bottom_y) / 2
    mouth_curvature = (corners_y - lip_center_y) / eye_distance

    left_eye = _dist(pts[LEFT_EYE_OUTER], pts[LEFT_EYE_INNER]) / eye_distance
    right_eye = _dist(pts[RIGHT_EYE_OUTER], pts[RIGHT_EYE_INNER]) / eye_distance
    eye_opening = (left_eye + right_eye) / 2

    eye_center_y = (pts[LEFT_EYE_INNER][1] + pts[RIGHT_EYE_INNER][1]) / 2
    brow_y = (pts[LEFT_EYEBROW][1] + pts[RIGHT_EYEBROW][1]) / 2
    eyebrow_position = (brow_y - eye_center_y) / eye_distance
    mouth_relative_position = (lip_center_y - eye_center_y) / eye_distance

    vec = FeatureVector(
        mouth_width=mouth_width,
        mouth_height=mouth_height,
        smile_ratio=smile_ratio,
        mouth_curvature=mouth_curvature,
        eye_opening=eye_opening,
        eyebrow_position=eyebrow_position,
        mouth_relative_position=mouth_relative_position,
    )
    logger.debug(
        f"[features] smile_ratio={smile_ratio:.3f} curvature={mouth_curvature:.3f} "
        f"eye_opening={eye_opening:.3f} eyebrow={eyebrow_position:.3f}"
    )
    return vec
