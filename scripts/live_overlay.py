
"""Run live mood detection with a camera preview window.

Usage:
    uvicorn api.main:app --reload  # (separate, for API)
    python scripts/live_overlay.py  # (to see camera overlay window)

Press 'q' to stop detection; the detected mood is printed as the handoff.
"""
import asyncio
import json
import logging

import cv2

from mood.config import Settings
from mood.detector import MoodDetector
from mood.tracks import SpotifyTrackService
from mood.visual import draw_mood_overlay


async def run(settings: Settings) -> None:
    tracks = SpotifyTrackService(settings)
    handoffs = []
    detector = MoodDetector(settings, fetch_tracks=tracks.fetch, on_handoff=handoffs.append)
    try:
        await detector.start()
        while detector.running:
            frame = await asyncio.to_thread(detector.camera.read) if detector.camera else None
            if frame is not None:
                st = detector.status()
                cv2.imshow("Mood Live (q to stop)", draw_mood_overlay(frame, st.mood, st.confidence))
            if (cv2.waitKey(1) & 0xFF) == ord("q"):
                break
            await asyncio.sleep(0.03)
        if detector.running:
            detector.stop()
        for handoff in handoffs:
            print(json.dumps(handoff.model_dump(), indent=2))
    finally:
        detector.close()
        cv2.destroyAllWindows()


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run(Settings()))
