"""
MediaPipe Face Mesh landmark extraction (lazy-loaded, shared across callers).
"""
from __future__ import annotations
import asyncio
import logging
import threading
from typing import Callable, List, Optional

import cv2
import numpy as np

from mood.config import Settings
from mood.models import Keypoint

logger = logging.getLogger(__name__)


class ModelLoadError(RuntimeError):
    """The landmark model could not be created; detection continues on the fallback."""


class FaceMeshExtractor:
    """
    Model-backed landmark extractor: BGR frame -> keypoints per detected face.

    One MediaPipe graph is not safe for parallel use, so process() calls are
    serialized. static_image_mode=True treats every frame as an unrelated still.
    """

    def __init__(self, settings: Settings, static_image_mode: bool = False):
        # Lazy import so a missing/broken mediapipe install surfaces as a load failure
        import mediapipe as mp

        self._mesh = mp.solutions.face_mesh.FaceMesh(
            static_image_mode=static_image_mode,
            max_num_faces=settings.MAX_FACES,
            refine_landmarks=settings.REFINE_LANDMARKS,
            min_detection_confidence=settings.MIN_DETECTION_CONFIDENCE,
            min_tracking_confidence=settings.MIN_TRACKING_CONFIDENCE,
        )
        self._lock = threading.Lock()

    def estimate_faces(self, frame: np.ndarray) -> List[List[Keypoint]]:
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        with self._lock:
            results = self._mesh.process(rgb)
        faces = getattr(results, "multi_face_landmarks", None) or []
        return [
            [Keypoint(x=lm.x, y=lm.y, z=lm.z) for lm in face.landmark]
            for face in faces
        ]

    def close(self) -> None:
        with self._lock:
            self._mesh.close()


class LandmarkModelLoader:
    """
    Idempotent async loader for the landmark model.

    Concurrent load() calls await the same in-flight load. A failed attempt is
    retried MODEL_LOAD_RETRIES times; the final failure raises ModelLoadError and
    a later load() starts over.
    """

    def __init__(self, settings: Settings, factory: Optional[Callable[[Settings], object]] = None):
        self.s = settings
        self._factory = factory or FaceMeshExtractor
        self._model = None
        self._pending: Optional[asyncio.Future] = None
        self.last_error: Optional[str] = None

    @property
    def model(self):
        return self._model

    @property
    def loading(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def load(self):
        if self._model is not None:
            return self._model
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._load_with_retry())
            self._pending.add_done_callback(self._clear_pending)
        else:
            logger.debug("[landmarks] model already loading, waiting")
        return await asyncio.shield(self._pending)

    def _clear_pending(self, fut: asyncio.Future) -> None:
        if self._pending is fut:
            self._pending = None

    async def _load_with_retry(self):
        attempts = 1 + max(0, int(self.s.MODEL_LOAD_RETRIES))
        for attempt in range(1, attempts + 1):
            try:
                logger.debug(f"[landmarks] loading face mesh model attempt={attempt}")
                model = await asyncio.to_thread(self._factory, self.s)
            except Exception as e:
                self.last_error = str(e) or e.__class__.__name__
                logger.warning(f"[landmarks] model load failed attempt={attempt}: {self.last_error}")
                if attempt < attempts:
                    await asyncio.sleep(self.s.MODEL_RETRY_DELAY)
                    continue
                raise ModelLoadError(f"Failed to load face mesh model: {self.last_error}") from e
            self._model = model
            self.last_error = None
            logger.debug("[landmarks] face mesh model ready")
            return model

    def dispose(self) -> None:
        model, self._model = self._model, None
        if model is not None and hasattr(model, "close"):
            try:
                model.close()
            except Exception:
                logger.warning("[landmarks] error disposing model")
