"""
CLI: detect the mood in an image -> JSON, or list tracks for a mood.
"""
from __future__ import annotations
import argparse, json, os
from mood.config import Settings
from mood.landmarks import FaceMeshExtractor
from mood.pipeline import analyze_image, load_image
from mood.tracks import SpotifyTrackService

def main():
    p = argparse.ArgumentParser()
    p.add_argument("--image", help="Path to input image")
    p.add_argument("--mood", help="Mood to look up tracks for")
    p.add_argument("--tracks", action="store_true", help="Fetch tracks for --mood (or the detected mood)")
    p.add_argument("--out", default=None, help="Optional path to output JSON")
    args = p.parse_args()
    if not args.image and not args.mood:
        p.error("one of --image or --mood is required")

    settings = Settings()
    result: dict = {}
    mood = args.mood
    if args.image:
        try:
            extractor = FaceMeshExtractor(settings)
        except Exception as e:
            print(f"⚠️ Face mesh unavailable ({e}); using fallback detection")
            extractor = None
        detected = analyze_image(load_image(args.image), extractor)
        if extractor is not None:
            extractor.close()
        result.update(detected.model_dump())
        mood = mood or detected.mood

    if args.tracks:
        tracks = SpotifyTrackService(settings).get_tracks_by_mood(mood, settings.TRACK_LIMIT)
        result["mood"] = mood
        result["tracks"] = [t.model_dump() for t in tracks]

    print(json.dumps(result, indent=2, ensure_ascii=False))

    if args.out:
        os.makedirs(os.path.dirname(args.out) or ".", exist_ok=True)
        with open(args.out, "w", encoding="utf-8") as f:
            json.dump(result, f, indent=2, ensure_ascii=False)
        print(f"✅ Result written to {args.out}")

if __name__ == "__main__":
    main()
