# mood/pipeline.py
"""
Frame -> mood strategies.

ModelBacked runs landmark extraction + feature normalization + classification and
falls back per frame; RandomFallback is used when no landmark model is available.
Both return the same MoodResult shape.
"""
from __future__ import annotations
import asyncio
import logging
import os
import random
from typing import Optional

import cv2
import numpy as np

from mood.classifier import classify, classify_fallback
from mood.features import extract_features
from mood.models import MoodResult

logger = logging.getLogger(__name__)


class RandomFallback:
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng

    def predict(self, frame: Optional[np.ndarray] = None) -> MoodResult:
        return classify_fallback(self.rng)

    async def estimate(self, frame: Optional[np.ndarray] = None) -> MoodResult:
        return self.predict(frame)


class ModelBacked:
    """Uses the first detected face; any per-frame failure goes to the fallback."""

    def __init__(self, extractor, fallback: Optional[RandomFallback] = None):
        self.extractor = extractor
        self.fallback = fallback or RandomFallback()

    def predict(self, frame: Optional[np.ndarray]) -> MoodResult:
        if frame is None:
            logger.debug("[pipeline] no frame available; fallback")
            return self.fallback.predict(frame)
        try:
            faces = self.extractor.estimate_faces(frame)
        except Exception:
            logger.exception("[pipeline] landmark extraction failed; fallback")
            return self.fallback.predict(frame)
        return self._from_faces(faces, frame)

    async def estimate(self, frame: Optional[np.ndarray]) -> MoodResult:
        if frame is None:
            logger.debug("[pipeline] no frame available; fallback")
            return self.fallback.predict(frame)
        try:
            faces = await asyncio.to_thread(self.extractor.estimate_faces, frame)
        except Exception:
            logger.exception("[pipeline] landmark extraction failed; fallback")
            return self.fallback.predict(frame)
        return self._from_faces(faces, frame)

    def _from_faces(self, faces, frame) -> MoodResult:
        if not faces:
            logger.debug("[pipeline] no face in frame; fallback")
            return self.fallback.predict(frame)
        vec = extract_features(faces[0])
        if vec is None:
            return self.fallback.predict(frame)
        result = classify(vec)
        logger.debug(f"[pipeline] detected mood={result.mood} confidence={result.confidence:.2f}")
        return result


def decode_image(data: bytes) -> np.ndarray:
    """Decode an encoded image (jpg/png/...) into a BGR frame."""
    buf = np.frombuffer(data, dtype=np.uint8)
    frame = cv2.imdecode(buf, cv2.IMREAD_COLOR) if buf.size else None
    if frame is None:
        raise ValueError("Could not decode image")
    return frame


def load_image(path: str) -> np.ndarray:
    if not os.path.exists(path):
        raise FileNotFoundError(f"Image not found: {path}")
    frame = cv2.imread(path, cv2.IMREAD_COLOR)
    if frame is None:
        raise ValueError(f"Could not read image: {path}")
    return frame


def analyze_image(frame: np.ndarray, extractor=None,
                  rng: Optional[random.Random] = None) -> MoodResult:
    """
    One-shot mood for a single frame.

    Args:
        frame: BGR image.
        extractor: Landmark extractor; None means no model, so the fallback is used.
        rng: Optional random source for the fallback.
    """
    fallback = RandomFallback(rng)
    strategy = ModelBacked(extractor, fallback) if extractor is not None else fallback
    return strategy.predict(frame)
