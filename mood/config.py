"""
Configuration for mood detection and track lookup.
"""
from pydantic import BaseModel
import os


def _env_bool(name: str, default: str) -> bool:
    return (os.getenv(name, default) or default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """
    Runtime settings with environment-variable overrides.
    """
    # detection loop
    DETECT_INTERVAL: float = float(os.getenv("DETECT_INTERVAL", "2"))
    STABILIZE_DELAY: float = float(os.getenv("STABILIZE_DELAY", "2"))
    CAMERA_INDEX: int = int(os.getenv("CAMERA_INDEX", "0"))
    FRAME_WIDTH: int = int(os.getenv("FRAME_WIDTH", "640"))
    FRAME_HEIGHT: int = int(os.getenv("FRAME_HEIGHT", "480"))

    # face mesh model
    MAX_FACES: int = int(os.getenv("MAX_FACES", "1"))
    REFINE_LANDMARKS: bool = _env_bool("REFINE_LANDMARKS", "true")
    MIN_DETECTION_CONFIDENCE: float = float(os.getenv("MIN_DETECTION_CONFIDENCE", "0.5"))
    MIN_TRACKING_CONFIDENCE: float = float(os.getenv("MIN_TRACKING_CONFIDENCE", "0.5"))
    MODEL_LOAD_RETRIES: int = int(os.getenv("MODEL_LOAD_RETRIES", "1"))
    MODEL_RETRY_DELAY: float = float(os.getenv("MODEL_RETRY_DELAY", "1.0"))

    # tracks + handoff
    TRACK_LIMIT: int = int(os.getenv("TRACK_LIMIT", "20"))
    TRACK_FETCH_TYPE: str = os.getenv("TRACK_FETCH_TYPE", "recommendations")
    AUTO_HANDOFF: bool = _env_bool("AUTO_HANDOFF", "false")
    HANDOFF_DELAY: float = float(os.getenv("HANDOFF_DELAY", "1.5"))
    NOTICE_HISTORY: int = int(os.getenv("NOTICE_HISTORY", "20"))

    SPOTIFY_CLIENT_ID: str | None = os.getenv("SPOTIFY_CLIENT_ID") or None
    SPOTIFY_CLIENT_SECRET: str | None = os.getenv("SPOTIFY_CLIENT_SECRET") or None
    SPOTIFY_CACHE_TTL: float = float(os.getenv("SPOTIFY_CACHE_TTL", "1800"))

    def __init__(self, **data):
        super().__init__(**data)
        # Normalize TRACK_FETCH_TYPE: anything but "search" means curated recommendations
        kind = ((self.TRACK_FETCH_TYPE or "").split() or ["recommendations"])[0].lower()
        if kind not in ("search", "recommendations"):
            kind = "recommendations"
        object.__setattr__(self, "TRACK_FETCH_TYPE", kind)
