import pytest
from mood.models import Keypoint

# Reference geometry (normalized image coords); inter-eye distance = 0.2
BASE_POINTS = {
    61: (0.44, 0.70), 291: (0.56, 0.70),      # mouth corners
    13: (0.50, 0.68), 14: (0.50, 0.69),       # upper lip
    17: (0.50, 0.71), 18: (0.50, 0.72),       # lower lip
    33: (0.40, 0.40), 133: (0.35, 0.40),      # left eye inner/outer
    362: (0.60, 0.40), 263: (0.65, 0.40),     # right eye inner/outer
    107: (0.40, 0.35), 336: (0.60, 0.35),     # eyebrows
    4: (0.50, 0.55), 19: (0.50, 0.50),        # nose tip/bridge
}

# Overrides that push the classifier into a given mood
MOOD_POINTS = {
    "relaxed": {},
    # corners 0.002 below lip center -> curvature 0.01, wide mouth
    "happy": {61: (0.44, 0.702), 291: (0.56, 0.702)},
    # tall open mouth, corners above lip center -> ratio ~1.5, curvature -0.05
    "sad": {13: (0.50, 0.66), 14: (0.50, 0.66), 17: (0.50, 0.74), 18: (0.50, 0.74),
            61: (0.44, 0.69), 291: (0.56, 0.69)},
}


def build_landmarks(mood: str = "relaxed", count: int = 468, overrides=None):
    pts = [Keypoint(x=0.5, y=0.5, z=0.0) for _ in range(count)]
    points = dict(BASE_POINTS)
    points.update(MOOD_POINTS[mood])
    points.update(overrides or {})
    for idx, xy in points.items():
        if idx < count:
            pts[idx] = None if xy is None else Keypoint(x=xy[0], y=xy[1], z=0.0)
    return pts


@pytest.fixture
def landmarks():
    return build_landmarks


class DummyExtractor:
    """Landmark extractor returning scripted faces; the last entry repeats."""
    def __init__(self, script):
        self.script = list(script)
        self.calls = 0
        self.closed = False

    def estimate_faces(self, frame):
        i = min(self.calls, len(self.script) - 1)
        self.calls += 1
        item = self.script[i]
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True


@pytest.fixture
def dummy_extractor():
    return DummyExtractor
