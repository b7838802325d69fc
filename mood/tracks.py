"""
Spotify-backed track lookup for a detected mood (spotipy, client-credentials flow).

Tracks come from curated artist pools: each mood picks a number of artists from
each pool, takes their top tracks, dedupes by id and sorts by popularity.
"""
from __future__ import annotations
import asyncio
import logging
import math
import random
import time
from typing import Dict, List, Optional, Tuple

import spotipy
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyClientCredentials, SpotifyOauthError

from mood.config import Settings
from mood.models import MOODS, Track

logger = logging.getLogger(__name__)


class TrackFetchError(RuntimeError):
    """Track lookup failed; surfaced to the user, never retried automatically."""


class TrackCredentialsError(TrackFetchError):
    """Spotify client credentials are not configured."""


TOP_PUNJABI_ARTISTS = [
    "Karan Aujla", "Talha Anjum", "Talhah Yunus", "Young Stunners",
    "Sidhu Moose Wala", "AP Dhillon", "Diljit Dosanjh", "Shubh",
    "Arjan Dhillon", "Gurinder Gill", "Prabh Deep", "Raf Saperra",
]
TOP_ENGLISH_ARTISTS = [
    "Taylor Swift", "Drake", "The Weeknd", "Ed Sheeran",
    "Billie Eilish", "Dua Lipa", "Justin Bieber", "Ariana Grande",
    "Post Malone", "Imagine Dragons", "Travis Scott", "Olivia Rodrigo",
]
TOP_GLOBAL_ARTISTS = [
    "Bad Bunny", "BTS", "BLACKPINK", "Karol G",
    "J Balvin", "Calvin Harris", "Shakira", "David Guetta",
    "Rema", "Ayra Starr", "Martin Garrix", "Major Lazer",
]

ARTIST_POOLS: Dict[str, List[str]] = {
    "punjabi": TOP_PUNJABI_ARTISTS,
    "english": TOP_ENGLISH_ARTISTS,
    "global": TOP_GLOBAL_ARTISTS,
}
ARTIST_MARKET = {"punjabi": "IN", "english": "US", "global": "US"}

# artists taken per pool: (punjabi, english, global)
MOOD_ARTIST_COUNTS: Dict[str, Tuple[int, int, int]] = {
    "happy": (3, 3, 2),
    "excited": (3, 3, 2),
    "sad": (2, 3, 1),
    "relaxed": (2, 2, 2),
    "focused": (1, 3, 2),
}
DEFAULT_ARTIST_COUNTS = (2, 2, 2)
MIN_RECOMMENDATION_POOL = 20


def format_track(raw: Dict) -> Track:
    album = raw.get("album") or {}
    images = album.get("images") or []
    image = next((img.get("url") for img in images[:2] if img and img.get("url")), "")
    return Track(
        id=raw["id"],
        name=raw.get("name") or "",
        artists=", ".join(a.get("name", "") for a in raw.get("artists") or []),
        album=album.get("name") or "",
        album_image=image,
        preview_url=raw.get("preview_url"),
        external_url=(raw.get("external_urls") or {}).get("spotify", ""),
        duration_ms=int(raw.get("duration_ms") or 0),
        popularity=int(raw.get("popularity") or 0),
    )


def dedupe_tracks(tracks: List[Dict]) -> List[Dict]:
    seen = set()
    unique = []
    for t in tracks:
        tid = (t or {}).get("id")
        if tid and tid not in seen:
            seen.add(tid)
            unique.append(t)
    return unique


class _TTLCache:
    def __init__(self, ttl: float):
        self.ttl = float(ttl)
        self._data: Dict[str, Tuple[float, object]] = {}

    def get(self, key: str):
        hit = self._data.get(key)
        if hit is None:
            return None
        expires, value = hit
        if expires <= time.monotonic():
            self._data.pop(key, None)
            return None
        return value

    def set(self, key: str, value) -> None:
        self._data[key] = (time.monotonic() + self.ttl, value)


class SpotifyTrackService:
    """Mood -> tracks collaborator used by the detector and the /music/tracks route."""

    def __init__(self, settings: Settings, client: Optional[spotipy.Spotify] = None,
                 rng: Optional[random.Random] = None):
        self.s = settings
        self._client = client
        self.rng = rng or random.Random()
        self._artist_ids = _TTLCache(settings.SPOTIFY_CACHE_TTL)
        self._top_tracks = _TTLCache(settings.SPOTIFY_CACHE_TTL)

    # ---- client ----
    def _sp(self) -> spotipy.Spotify:
        if self._client is None:
            if not (self.s.SPOTIFY_CLIENT_ID and self.s.SPOTIFY_CLIENT_SECRET):
                raise TrackCredentialsError(
                    "Spotify API credentials are not configured. "
                    "Set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET."
                )
            auth = SpotifyClientCredentials(
                client_id=self.s.SPOTIFY_CLIENT_ID,
                client_secret=self.s.SPOTIFY_CLIENT_SECRET,
            )
            self._client = spotipy.Spotify(client_credentials_manager=auth)
        return self._client

    # ---- artist lookups ----
    def _artist_id(self, name: str, market: str) -> Optional[str]:
        key = name.lower()
        cached = self._artist_ids.get(key)
        if cached:
            return cached
        try:
            res = self._sp().search(q=f'artist:"{name}"', type="artist", limit=1, market=market)
        except SpotifyOauthError as e:
            raise TrackFetchError(f"Invalid Spotify credentials: {e}") from e
        except SpotifyException as e:
            logger.warning(f"[tracks] artist search failed name={name!r} status={e.http_status}")
            return None
        items = ((res or {}).get("artists") or {}).get("items") or []
        if not items:
            logger.warning(f"[tracks] no Spotify artist found for {name!r}")
            return None
        artist_id = items[0]["id"]
        self._artist_ids.set(key, artist_id)
        return artist_id

    def _artist_top_tracks(self, name: str, limit: int, category: str) -> List[Dict]:
        key = f"{name.lower()}::{category}"
        cached = self._top_tracks.get(key)
        if cached is not None:
            return cached[:limit]
        market = ARTIST_MARKET.get(category, "US")
        artist_id = self._artist_id(name, market)
        if not artist_id:
            return []
        try:
            res = self._sp().artist_top_tracks(artist_id, country=market)
        except SpotifyOauthError as e:
            raise TrackFetchError(f"Invalid Spotify credentials: {e}") from e
        except SpotifyException as e:
            logger.warning(f"[tracks] top tracks failed name={name!r} status={e.http_status}")
            return []
        tracks = sorted((res or {}).get("tracks") or [], key=lambda t: t.get("popularity") or 0, reverse=True)
        self._top_tracks.set(key, tracks)
        return tracks[:limit]

    def artists_for_mood(self, mood: str) -> List[Tuple[str, str]]:
        """(artist, category) picks for a mood, shuffled within each pool."""
        counts = MOOD_ARTIST_COUNTS.get(mood.lower(), DEFAULT_ARTIST_COUNTS)
        picks: List[Tuple[str, str]] = []
        for (category, pool), n in zip(ARTIST_POOLS.items(), counts):
            shuffled = list(pool)
            self.rng.shuffle(shuffled)
            picks.extend((name, category) for name in shuffled[:max(1, n)])
        return picks

    def _collect(self, mood: str, limit: int) -> List[Dict]:
        picks = self.artists_for_mood(mood)
        per_artist = max(2, math.ceil(limit / max(1, len(picks))))
        used = set()
        combined: List[Dict] = []
        for name, category in picks:
            used.add(name.lower())
            tracks = self._artist_top_tracks(name, per_artist, category)
            if not tracks:
                logger.warning(f"[tracks] no top tracks for {name!r} ({category})")
            combined.extend(tracks)
        combined = dedupe_tracks(combined)

        if len(combined) < limit:
            remaining = [(n, c) for c, pool in ARTIST_POOLS.items() for n in pool if n.lower() not in used]
            self.rng.shuffle(remaining)
            for name, category in remaining:
                if len(combined) >= limit:
                    break
                used.add(name.lower())
                combined = dedupe_tracks(combined + self._artist_top_tracks(name, per_artist, category))

        combined.sort(key=lambda t: t.get("popularity") or 0, reverse=True)
        return combined[:limit]

    # ---- public API ----
    def get_tracks_by_mood(self, mood: str, limit: int = 20) -> List[Track]:
        mood = self._check_mood(mood)
        tracks = self._collect(mood, limit)
        if not tracks:
            logger.warning(f"[tracks] no curated tracks for mood={mood}")
        return [format_track(t) for t in tracks]

    def get_recommendations_by_mood(self, mood: str, limit: int = 20) -> List[Track]:
        mood = self._check_mood(mood)
        try:
            tracks = self._collect(mood, max(limit, MIN_RECOMMENDATION_POOL))
        except TrackFetchError:
            raise
        except Exception:
            logger.exception(f"[tracks] recommendations failed mood={mood}; using plain lookup")
            return self.get_tracks_by_mood(mood, limit)
        return [format_track(t) for t in tracks[:limit]]

    async def fetch(self, mood: str) -> List[Track]:
        lookup = self.get_tracks_by_mood if self.s.TRACK_FETCH_TYPE == "search" else self.get_recommendations_by_mood
        logger.debug(f"[tracks] fetching {self.s.TRACK_FETCH_TYPE} for mood={mood}")
        return await asyncio.to_thread(lookup, mood, self.s.TRACK_LIMIT)

    @staticmethod
    def _check_mood(mood: str) -> str:
        m = (mood or "").strip().lower()
        if m not in MOODS:
            raise ValueError(f"Unknown mood: {mood!r}")
        return m
