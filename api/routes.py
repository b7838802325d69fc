"""
REST endpoints for mood analysis, live detection and track lookup.
"""
import asyncio
from fastapi import APIRouter, UploadFile, File, HTTPException, Query
from fastapi.responses import JSONResponse
import logging

from mood.camera import CameraPermissionError
from mood.classifier import classify
from mood.config import Settings
from mood.detector import MoodDetector
from mood.landmarks import FaceMeshExtractor, LandmarkModelLoader, ModelLoadError
from mood.models import FeatureVector, TracksResponse
from mood.pipeline import ModelBacked, RandomFallback, decode_image
from mood.tracks import SpotifyTrackService, TrackCredentialsError, TrackFetchError


router = APIRouter()
settings = Settings()
logger = logging.getLogger(__name__)

track_service = SpotifyTrackService(settings)
detector = MoodDetector(settings, fetch_tracks=track_service.fetch)


def _still_image_extractor(s: Settings) -> FaceMeshExtractor:
    return FaceMeshExtractor(s, static_image_mode=True)


# uploads get their own graph; the live tracking graph only sees camera frames
image_loader = LandmarkModelLoader(settings, factory=_still_image_extractor)


async def _landmark_model():
    """Still-image face mesh model, or None when it cannot be loaded."""
    if image_loader.last_error is not None:
        return None
    try:
        return await image_loader.load()
    except ModelLoadError:
        logger.warning("[api] landmark model unavailable; using fallback classifier")
        return None


@router.post("/mood/analyze")
async def analyze_mood(file: UploadFile = File(...)):
    """
    Detect the mood in an uploaded image.

    Args:
        file: Uploaded image (jpg/png).

    Returns:
        JSONResponse: {"mood": ..., "confidence": ...}
    """
    logger.debug(f"[api] /mood/analyze filename={file.filename}")
    data = await file.read()
    try:
        frame = decode_image(data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    model = await _landmark_model()
    strategy = ModelBacked(model) if model is not None else RandomFallback()
    result = await strategy.estimate(frame)
    return JSONResponse(result.model_dump())


@router.post("/mood/classify")
async def classify_features(features: FeatureVector):
    """Classify a precomputed feature vector."""
    return JSONResponse(classify(features).model_dump())


@router.post("/live/start")
async def live_start():
    try:
        started = await detector.start()
    except CameraPermissionError:
        raise HTTPException(
            status_code=403,
            detail="Unable to access camera. Please allow camera permissions and try again.",
        )
    return {"status": "started" if started else "already_running"}


@router.get("/live/status")
async def live_status():
    return JSONResponse(detector.status().model_dump())


@router.post("/live/stop")
async def live_stop():
    if detector.idle:
        return {"status": "not_running", "handoff": None}
    handoff = detector.stop()
    return {"status": "stopped", "handoff": handoff.model_dump()}


@router.get("/music/tracks")
async def music_tracks(
    mood: str | None = Query(None),
    limit: int = Query(20, ge=1, le=50),
    type: str = Query("recommendations"),
):
    """
    Tracks for a mood from the curated Spotify artist pools.

    Args:
        mood: happy | sad | excited | relaxed | focused
        limit: Maximum number of tracks.
        type: "recommendations" or "search".
    """
    if not mood:
        raise HTTPException(status_code=400, detail="Mood parameter is required")
    logger.debug(f"[api] /music/tracks mood={mood} limit={limit} type={type}")
    lookup = track_service.get_tracks_by_mood if type == "search" else track_service.get_recommendations_by_mood
    try:
        tracks = await asyncio.to_thread(lookup, mood, limit)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TrackCredentialsError as e:
        logger.exception("[api] Spotify credentials missing")
        raise HTTPException(status_code=503, detail=str(e))
    except TrackFetchError as e:
        logger.exception("[api] track lookup failed")
        raise HTTPException(status_code=502, detail=str(e))
    resp = TracksResponse(mood=mood.strip().lower(), count=len(tracks), tracks=tracks)
    return JSONResponse(resp.model_dump())
