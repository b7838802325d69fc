import cv2
import numpy as np
from fastapi.testclient import TestClient

from api.main import app
import api.routes as routes
from mood.camera import CameraPermissionError
from mood.models import DetectorStatus, Handoff, Track
from mood.config import Settings
from mood.landmarks import LandmarkModelLoader
from mood.tracks import TrackCredentialsError, TrackFetchError


class StubDetector:
    def __init__(self, start_exc=None):
        self.started = False
        self.start_exc = start_exc

    @property
    def running(self):
        return self.started

    @property
    def idle(self):
        return not self.started

    async def start(self):
        if self.start_exc is not None:
            raise self.start_exc
        if self.started:
            return False
        self.started = True
        return True

    def status(self):
        return DetectorStatus(state="detecting" if self.started else "idle",
                              mood="happy" if self.started else None, confidence=0.9)

    def stop(self, silent=False):
        self.started = False
        return Handoff.for_mood("happy")

    def close(self):
        pass


class StubTracks:
    def __init__(self, exc=None):
        self.exc = exc
        self.calls = []

    def _lookup(self, kind, mood, limit):
        self.calls.append((kind, mood, limit))
        if self.exc is not None:
            raise self.exc
        if mood.strip().lower() not in ("happy", "sad", "excited", "relaxed", "focused"):
            raise ValueError(f"Unknown mood: {mood!r}")
        return [Track(id=f"t{i}", name=f"Song {i}") for i in range(limit)]

    def get_tracks_by_mood(self, mood, limit=20):
        return self._lookup("search", mood, limit)

    def get_recommendations_by_mood(self, mood, limit=20):
        return self._lookup("recommendations", mood, limit)


def _png():
    ok, buf = cv2.imencode(".png", np.zeros((32, 32, 3), dtype=np.uint8))
    return buf.tobytes()


def test_health():
    client = TestClient(app)
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_classify_features():
    client = TestClient(app)
    r = client.post("/mood/classify", json={"smile_ratio": 3.0, "mouth_curvature": 0.02, "eye_opening": 0.05})
    assert r.status_code == 200
    assert r.json()["mood"] == "happy"
    assert r.json()["confidence"] == 0.9


def test_analyze_image_with_model(monkeypatch, dummy_extractor, landmarks):
    ext = dummy_extractor([[landmarks("sad")]])

    async def fake_model():
        return ext
    monkeypatch.setattr(routes, "_landmark_model", fake_model)

    client = TestClient(app)
    r = client.post("/mood/analyze", files={"file": ("face.png", _png(), "image/png")})
    assert r.status_code == 200
    assert r.json() == {"mood": "sad", "confidence": 0.9}
    assert ext.calls == 1


def test_analyze_image_without_model(monkeypatch):
    async def no_model():
        return None
    monkeypatch.setattr(routes, "_landmark_model", no_model)

    client = TestClient(app)
    r = client.post("/mood/analyze", files={"file": ("face.png", _png(), "image/png")})
    assert r.status_code == 200
    j = r.json()
    assert j["mood"] in ("happy", "sad", "excited", "relaxed", "focused")
    assert 0.7 <= j["confidence"] <= 0.95


def test_analyze_invalid_image():
    client = TestClient(app)
    r = client.post("/mood/analyze", files={"file": ("face.png", b"garbage", "image/png")})
    assert r.status_code == 400


def test_live_lifecycle(monkeypatch):
    monkeypatch.setattr(routes, "detector", StubDetector())
    client = TestClient(app)
    assert client.post("/live/stop").json() == {"status": "not_running", "handoff": None}
    assert client.post("/live/start").json()["status"] == "started"
    assert client.post("/live/start").json()["status"] == "already_running"
    body = client.get("/live/status").json()
    assert body["state"] == "detecting"
    assert body["mood"] == "happy"
    r = client.post("/live/stop")
    assert r.status_code == 200
    assert r.json()["status"] == "stopped"
    assert r.json()["handoff"]["player_path"] == "/player?mood=happy"


def test_live_start_camera_denied(monkeypatch):
    monkeypatch.setattr(routes, "detector", StubDetector(start_exc=CameraPermissionError("denied")))
    client = TestClient(app)
    r = client.post("/live/start")
    assert r.status_code == 403
    assert "camera permissions" in r.json()["detail"]


def test_music_tracks(monkeypatch):
    stub = StubTracks()
    monkeypatch.setattr(routes, "track_service", stub)
    client = TestClient(app)
    r = client.get("/music/tracks", params={"mood": "Happy", "limit": 3, "type": "search"})
    assert r.status_code == 200
    j = r.json()
    assert j["mood"] == "happy" and j["count"] == 3
    assert [t["id"] for t in j["tracks"]] == ["t0", "t1", "t2"]
    client.get("/music/tracks", params={"mood": "sad"})
    assert stub.calls[-1] == ("recommendations", "sad", 20)


def test_music_tracks_errors(monkeypatch):
    client = TestClient(app)
    monkeypatch.setattr(routes, "track_service", StubTracks())
    assert client.get("/music/tracks").status_code == 400
    assert client.get("/music/tracks", params={"mood": "angry"}).status_code == 400
    assert client.get("/music/tracks", params={"mood": "sad", "limit": 0}).status_code == 422

    monkeypatch.setattr(routes, "track_service", StubTracks(TrackCredentialsError("Spotify API credentials are not configured.")))
    assert client.get("/music/tracks", params={"mood": "sad"}).status_code == 503

    monkeypatch.setattr(routes, "track_service", StubTracks(TrackFetchError("Invalid Spotify credentials: not configured correctly")))
    assert client.get("/music/tracks", params={"mood": "sad"}).status_code == 502


def test_analyze_uses_fallback_after_failed_model_load(monkeypatch):
    attempts = []

    def broken(s):
        attempts.append(1)
        raise RuntimeError("no mediapipe")

    s = Settings(MODEL_LOAD_RETRIES=1, MODEL_RETRY_DELAY=0.0)
    monkeypatch.setattr(routes, "image_loader", LandmarkModelLoader(s, factory=broken))
    client = TestClient(app)
    for _ in range(3):
        r = client.post("/mood/analyze", files={"file": ("face.png", _png(), "image/png")})
        assert r.status_code == 200
    assert len(attempts) == 2


def test_analyze_does_not_share_live_model():
    assert routes.image_loader is not routes.detector.loader


class StartingDetector(StubDetector):
    @property
    def idle(self):
        return False


def test_live_stop_while_starting(monkeypatch):
    monkeypatch.setattr(routes, "detector", StartingDetector())
    client = TestClient(app)
    r = client.post("/live/stop")
    assert r.status_code == 200
    assert r.json()["status"] == "stopped"
