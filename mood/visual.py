"""Visualization helpers for the live preview window.

- hex_to_bgr: convert the UI mood colors to OpenCV BGR tuples
- draw_mood_overlay: mood-colored face box + "<mood> NN%" label, or a NO_MOOD caption
"""
from __future__ import annotations
import cv2
import numpy as np
from typing import Optional, Tuple

from mood.classifier import mood_color


def hex_to_bgr(color: str) -> Tuple[int, int, int]:
    c = color.lstrip("#")
    r, g, b = int(c[0:2], 16), int(c[2:4], 16), int(c[4:6], 16)
    return b, g, r


def draw_mood_overlay(frame: np.ndarray,
                      mood: Optional[str] = None,
                      confidence: float = 0.0) -> np.ndarray:
    """Draw the detection box and mood label on a copy of the frame.

    Args:
        frame: BGR image
        mood: detected mood, or None while nothing has been detected
        confidence: 0..1 confidence shown next to the mood

    Returns:
        Annotated copy of the frame
    """
    out = frame.copy()
    h, w = out.shape[:2]

    if not mood:
        cv2.putText(out, "NO_MOOD", (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 1.0, (0, 0, 255), 2, cv2.LINE_AA)
        return out

    color = hex_to_bgr(mood_color(mood))
    x0, y0 = w // 4, h // 4
    x1, y1 = x0 + w // 2, y0 + h // 2
    cv2.rectangle(out, (x0, y0), (x1, y1), color, 3)
    label = f"{mood} {int(round(confidence * 100))}%"
    cv2.putText(out, label, (x0, max(0, y0 - 10)), cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 2, cv2.LINE_AA)
    return out
