"""
Webcam frame source (OpenCV).
"""
from __future__ import annotations
import logging
import threading
from typing import Optional

import cv2
import numpy as np

from mood.config import Settings

logger = logging.getLogger(__name__)


class CameraPermissionError(RuntimeError):
    """The capture device is denied or absent; fatal to the detection session."""


class CameraSource:
    """Permission-gated live frame source. read() may be called from worker threads."""

    def __init__(self, settings: Settings, camera_index: Optional[int] = None):
        self.s = settings
        self.index = settings.CAMERA_INDEX if camera_index is None else camera_index
        self._cap = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._cap is not None

    def open(self) -> "CameraSource":
        if self._cap is not None:
            return self
        cap = cv2.VideoCapture(self.index)
        if not cap.isOpened():
            cap.release()
            raise CameraPermissionError(f"Could not open camera index {self.index}")
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.s.FRAME_WIDTH)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.s.FRAME_HEIGHT)
        self._cap = cap
        logger.debug(f"[camera] opened index={self.index} size={self.width}x{self.height}")
        return self

    @property
    def width(self) -> int:
        return int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)) if self._cap is not None else 0

    @property
    def height(self) -> int:
        return int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)) if self._cap is not None else 0

    def read(self) -> Optional[np.ndarray]:
        with self._lock:
            if self._cap is None:
                return None
            ok, frame = self._cap.read()
        return frame if ok else None

    def release(self) -> None:
        with self._lock:
            cap, self._cap = self._cap, None
        if cap is not None:
            cap.release()
            logger.debug(f"[camera] released index={self.index}")
