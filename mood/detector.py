# mood/detector.py
"""
Live mood detection controller.

Opens the webcam, runs capture -> landmarks -> features -> mood on a fixed period and
asks the track collaborator for music whenever the mood differs from the last mood
music was fetched for:
- idle -> starting -> detecting -> idle
- ticks never overlap: the next one is scheduled only after the previous completes
- at most one track fetch is outstanding; triggers that arrive meanwhile are skipped
- stop() releases the camera and cancels timers synchronously; late results are dropped
"""
from __future__ import annotations

import asyncio
import collections
import enum
import logging
import random
import time
from typing import Awaitable, Callable, Deque, List, Optional

from mood.camera import CameraPermissionError, CameraSource
from mood.classifier import classify_fallback
from mood.config import Settings
from mood.landmarks import LandmarkModelLoader, ModelLoadError
from mood.models import DetectorStatus, Handoff, MoodResult, Notice
from mood.pipeline import ModelBacked, RandomFallback
from mood.session import DetectionSession

logger = logging.getLogger(__name__)

FetchTracks = Callable[[str], Awaitable[list]]


class DetectorState(str, enum.Enum):
    IDLE = "idle"
    STARTING = "starting"
    DETECTING = "detecting"


class MoodDetector:
    """Owns one camera, one landmark model loader and at most one live session."""

    def __init__(
        self,
        settings: Settings,
        fetch_tracks: Optional[FetchTracks] = None,
        camera_factory: Optional[Callable[[Settings], CameraSource]] = None,
        loader: Optional[LandmarkModelLoader] = None,
        on_handoff: Optional[Callable[[Handoff], None]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.s = settings
        self._fetch_tracks = fetch_tracks
        self._camera_factory = camera_factory or CameraSource
        self.loader = loader or LandmarkModelLoader(settings)
        self.on_handoff = on_handoff
        self.rng = rng

        self.state = DetectorState.IDLE
        self.camera: Optional[CameraSource] = None
        self.notices: Deque[Notice] = collections.deque(maxlen=max(1, settings.NOTICE_HISTORY))
        self._session: Optional[DetectionSession] = None
        self._strategy = None
        self._loop_task: Optional[asyncio.Task] = None
        self._fetch_task: Optional[asyncio.Task] = None
        self._handoff_timer: Optional[asyncio.TimerHandle] = None
        self._ticking = False

    # ---- accessors ----
    @property
    def session(self) -> Optional[DetectionSession]:
        return self._session

    @property
    def running(self) -> bool:
        return self.state is DetectorState.DETECTING

    @property
    def idle(self) -> bool:
        return self.state is DetectorState.IDLE

    def status(self) -> DetectorStatus:
        ses = self._session
        return DetectorStatus(
            state=self.state.value,
            started_at=ses.started_at if ses else None,
            mood=ses.current_mood if ses else None,
            confidence=ses.confidence if ses else 0.0,
            mood_change_count=ses.mood_change_count if ses else 0,
            last_fetched_mood=ses.last_fetched_mood if ses else None,
            fetch_in_progress=ses.fetch_in_progress if ses else False,
            tracks_fetched=ses.tracks_fetched if ses else False,
            fetched_tracks_count=ses.fetched_tracks_count if ses else 0,
            model_ready=self.loader.model is not None,
            model_error=self.loader.last_error,
            notices=list(self.notices),
        )

    def _notify(self, level: str, message: str) -> None:
        self.notices.append(Notice(ts=time.time(), level=level, message=message))
        log = {"error": logger.error, "warning": logger.warning}.get(level, logger.info)
        log(f"[detector] {message}")

    # ---- lifecycle ----
    async def start(self) -> bool:
        """Idle -> Starting -> Detecting. Returns False when a session is already running."""
        if self.state is not DetectorState.IDLE:
            logger.debug(f"[detector] start ignored in state={self.state.value}")
            return False
        self.state = DetectorState.STARTING
        session = DetectionSession()
        self._session = session
        camera = None
        try:
            fallback = RandomFallback(self.rng)
            try:
                model = await self.loader.load()
                self._strategy = ModelBacked(model, fallback)
            except ModelLoadError as e:
                logger.debug(f"[detector] {e}")
                self._notify("warning", "AI model failed to load. Using fallback detection.")
                self._strategy = fallback

            if self._session is not session:
                # stopped while the model was loading
                return False

            camera = self._camera_factory(self.s)
            try:
                await asyncio.to_thread(camera.open)
            except CameraPermissionError:
                logger.exception("[detector] camera unavailable")
                self._notify("error", "Unable to access camera. Please allow camera permissions and try again.")
                raise

            if self._session is not session:
                camera.release()
                return False
        except BaseException as e:
            if not isinstance(e, CameraPermissionError):
                logger.error(f"[detector] start failed: {e!r}")
            session.deactivate()
            if camera is not None:
                camera.release()
            if self._session is session:
                self._session = None
                self._strategy = None
                self.state = DetectorState.IDLE
            raise

        self.camera = camera
        self.state = DetectorState.DETECTING
        self._loop_task = asyncio.create_task(self._run(session))
        logger.debug("[detector] camera started, detection loop scheduled")
        return True

    def stop(self, silent: bool = False) -> Handoff:
        """
        Detecting -> Idle. Cancels the loop and pending timers, releases the camera and
        hands off the last detected mood. silent=True is teardown: no notices.
        """
        session = self._session
        mood = session.handoff_mood() if session else None
        if session is not None:
            session.deactivate()
        self._session = None

        if self._loop_task is not None:
            self._loop_task.cancel()
            self._loop_task = None
        if self._handoff_timer is not None:
            self._handoff_timer.cancel()
            self._handoff_timer = None
        if self.camera is not None:
            self.camera.release()
            self.camera = None
        self._strategy = None
        self.state = DetectorState.IDLE

        handoff = Handoff.for_mood(mood)
        if mood:
            logger.debug(f"[detector] stopped; handing off mood={mood}")
        else:
            logger.debug("[detector] stopped; no mood was detected")
            if not silent:
                self._notify("warning", "No mood was detected. Please try again.")
        if session is not None and self.on_handoff is not None:
            self.on_handoff(handoff)
        return handoff

    def teardown(self) -> Handoff:
        return self.stop(silent=True)

    def close(self) -> None:
        self.teardown()
        self.loader.dispose()

    async def join_fetch(self) -> None:
        """Wait for the outstanding track fetch, if any."""
        task = self._fetch_task
        if task is not None and not task.done():
            await asyncio.gather(task, return_exceptions=True)

    # ---- loop ----
    async def _run(self, session: DetectionSession) -> None:
        try:
            await asyncio.sleep(self.s.STABILIZE_DELAY)
            while session.active:
                await self.tick()
                await asyncio.sleep(self.s.DETECT_INTERVAL)
        except asyncio.CancelledError:
            logger.debug("[detector] detection loop cancelled")
            raise

    async def tick(self) -> Optional[MoodResult]:
        """One detection cycle. Returns None when skipped or discarded."""
        session = self._session
        if session is None or not session.active:
            return None
        if self._ticking:
            logger.debug("[detector] previous tick still running; skipping")
            return None

        self._ticking = True
        try:
            strategy = self._strategy or RandomFallback(self.rng)
            try:
                frame = await asyncio.to_thread(self.camera.read) if self.camera is not None else None
                result = await strategy.estimate(frame)
            except Exception:
                logger.exception("[detector] detection tick failed; fallback")
                result = classify_fallback(self.rng)
        finally:
            self._ticking = False

        if not session.active or session is not self._session:
            logger.debug("[detector] session stopped during tick; result discarded")
            return None

        previous = session.current_mood
        changed = session.record(result)
        logger.debug(
            f"[detector] mood={result.mood} confidence={result.confidence:.2f} "
            f"previous={previous} changed={changed}"
        )
        if session.should_fetch(result.mood):
            self._trigger_fetch(session, result.mood)
        return result

    # ---- track fetch ----
    def _trigger_fetch(self, session: DetectionSession, mood: str) -> None:
        if self._fetch_tracks is None:
            return
        first = session.fetch_count == 0
        if not session.begin_fetch(mood):
            logger.debug(f"[detector] fetch already outstanding; skipping trigger for mood={mood}")
            return
        self._fetch_task = asyncio.create_task(self._fetch(session, mood, first))

    async def _fetch(self, session: DetectionSession, mood: str, first: bool) -> None:
        count: Optional[int] = None
        try:
            logger.debug(f"[detector] fetching tracks for mood={mood}")
            tracks = await self._fetch_tracks(mood)
            count = len(tracks or [])
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"[detector] track fetch failed mood={mood}")
            if session.active:
                self._notify("error", f"Failed to fetch music: {e}")
            return
        finally:
            session.end_fetch(count)

        if not session.active or session is not self._session:
            logger.debug(f"[detector] discarding tracks for mood={mood}; detection stopped")
            return
        self._notify("success", f"Found {count} tracks for {mood} mood!")

        if self.s.AUTO_HANDOFF and first and count > 0 and self._handoff_timer is None:
            loop = asyncio.get_running_loop()
            self._handoff_timer = loop.call_later(self.s.HANDOFF_DELAY, self._auto_handoff, session)

    def _auto_handoff(self, session: DetectionSession) -> None:
        self._handoff_timer = None
        if session is self._session and session.active:
            logger.debug("[detector] first tracks ready; handing off to player")
            self.stop(silent=True)
