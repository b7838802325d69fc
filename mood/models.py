"""
Pydantic data models for mood detection and API IO.
"""
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Literal

Mood = Literal["happy", "sad", "excited", "relaxed", "focused"]
MOODS: tuple[str, ...] = ("happy", "sad", "excited", "relaxed", "focused")


class Keypoint(BaseModel):
    x: float
    y: float
    z: Optional[float] = None


class FeatureVector(BaseModel):
    """Scale-invariant face geometry, every distance divided by the inter-eye distance."""
    mouth_width: float = 0.0
    mouth_height: float = 0.0
    smile_ratio: float = 0.0
    mouth_curvature: float = 0.0
    eye_opening: float = 0.0
    eyebrow_position: float = 0.0
    mouth_relative_position: float = 0.0


class MoodResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    mood: Mood
    confidence: float = Field(ge=0.0, le=1.0)


class Track(BaseModel):
    id: str
    name: str
    artists: str = ""
    album: str = ""
    album_image: str = ""
    preview_url: Optional[str] = None
    external_url: str = ""
    duration_ms: int = 0
    popularity: int = 0
    source: Literal["spotify"] = "spotify"


class TracksResponse(BaseModel):
    mood: Mood
    count: int
    tracks: List[Track] = Field(default_factory=list)


class Notice(BaseModel):
    ts: float
    level: Literal["info", "success", "warning", "error"]
    message: str


class Handoff(BaseModel):
    status: Literal["mood", "no_mood"]
    mood: Optional[Mood] = None
    player_path: Optional[str] = None

    @classmethod
    def for_mood(cls, mood: Optional[str]) -> "Handoff":
        if not mood:
            return cls(status="no_mood")
        return cls(status="mood", mood=mood, player_path=f"/player?mood={mood}")


# live detection


class DetectorStatus(BaseModel):
    state: Literal["idle", "starting", "detecting"]
    started_at: float | None = None
    mood: Optional[Mood] = None
    confidence: float = 0.0
    mood_change_count: int = 0
    last_fetched_mood: Optional[Mood] = None
    fetch_in_progress: bool = False
    tracks_fetched: bool = False
    fetched_tracks_count: int = 0
    model_ready: bool = False
    model_error: Optional[str] = None
    notices: List[Notice] = Field(default_factory=list)
