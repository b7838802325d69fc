from mood.models import MoodResult
from mood.session import DetectionSession


def _r(mood, conf=0.8):
    return MoodResult(mood=mood, confidence=conf)


def test_change_counter_ignores_first_result():
    s = DetectionSession()
    assert s.record(_r("happy")) is False
    assert s.record(_r("happy")) is False
    assert s.record(_r("sad")) is True
    assert s.record(_r("sad")) is False
    assert s.record(_r("happy")) is True
    assert s.mood_change_count == 2
    assert s.current_mood == "happy"


def test_fetch_guard():
    s = DetectionSession()
    assert s.should_fetch("happy")
    assert s.begin_fetch("happy")
    assert s.fetch_in_progress
    assert s.last_fetched_mood == "happy"
    assert not s.should_fetch("happy")
    # a second trigger while in flight is refused and leaves state alone
    assert not s.begin_fetch("sad")
    assert s.last_fetched_mood == "happy"
    assert s.fetch_count == 1
    s.end_fetch(12)
    assert not s.fetch_in_progress
    assert s.tracks_fetched and s.fetched_tracks_count == 12
    assert s.begin_fetch("sad")
    s.end_fetch(None)
    assert not s.tracks_fetched
    assert s.fetch_count == 2


def test_handoff_mood_and_deactivate():
    s = DetectionSession()
    assert s.handoff_mood() is None
    s.begin_fetch("relaxed")
    assert s.handoff_mood() == "relaxed"
    s.record(_r("focused"))
    assert s.handoff_mood() == "focused"
    s.deactivate()
    assert not s.active
    assert not s.should_fetch("sad")
    assert not s.begin_fetch("sad")
