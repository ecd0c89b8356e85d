"""
Gemini-backed taste profiles and watch-next suggestions ("The Oracle").
"""

import json

from stats_engine import movie_average, find_rating
from utils import STREAK_THRESHOLD, get_secret, get_gemini_model

MIN_RATINGS_FOR_PROFILE = 3
MIN_MOVIES_FOR_GROUP = 3
GROUP_PROMPT_LIMIT = 15


def collect_participant_ratings(snapshot, participant_id):
    """
    Every movie a participant rated, with their score.

    Returns:
        List of dicts with title, score and genres, in log order
    """
    collected = []
    for movie in snapshot.movies:
        rating = find_rating(movie, participant_id)
        if rating:
            collected.append({"title": movie.title, "score": rating.score, "genres": movie.genres or []})
    return collected


def collect_movie_stats(snapshot):
    """Per-movie group average and genres, in log order."""
    return [
        {"title": m.title, "avg_score": movie_average(m), "genres": m.genres or []}
        for m in snapshot.movies
    ]


def _require_model():
    api_key = get_secret("GOOGLE_API_KEY")
    if not api_key:
        raise RuntimeError("API Key missing")
    return get_gemini_model(api_key)


def _parse_recommendations(text):
    """
    Parse the model's JSON list of {title, year, pitch}.

    Raises:
        ValueError: if the output is not a JSON list
    """
    parsed = json.loads(text or "[]")
    if not isinstance(parsed, list):
        raise ValueError("Expected a JSON list of recommendations")
    return [
        {
            "title": str(item.get("title", "")),
            "year": str(item.get("year", "")),
            "pitch": str(item.get("pitch", "")),
        }
        for item in parsed
        if isinstance(item, dict)
    ]


def generate_taste_profile(participant_name, ratings):
    """
    Write a short psychographic profile of one participant.

    Args:
        participant_name: Display name
        ratings: List of dicts with title and score

    Returns:
        Plain text profile
    """
    model = _require_model()

    movies_text = ", ".join(
        f"{r['title']} ({r['score']:g}/5)"
        for r in sorted(ratings, key=lambda r: r["score"], reverse=True)
    )

    prompt = f"""
    Analyze the cinematic taste of "{participant_name}" based on these ratings they gave: {movies_text}.

    Please provide a "Psychographic Profile" in the voice of a sophisticated, slightly pretentious
    1970s film critic or a high-end sci-fi computer (like HAL 9000 but friendlier).

    Include:
    1. A "Vibe" summary (2-3 words).
    2. A short paragraph (max 80 words) analyzing their preferences (genres, themes, eras).
    3. A "Guilty Pleasure" prediction (invent a plausible specific sub-genre they probably secretly like).

    Return as plain text, formatted nicely.
    """
    return model.generate_content(prompt).text


def generate_group_recommendations(movie_stats):
    """
    Suggest three new movies based on the group's best-received screenings.

    Args:
        movie_stats: Output of collect_movie_stats

    Returns:
        List of dicts with title, year and pitch
    """
    if len(movie_stats) < MIN_MOVIES_FOR_GROUP:
        return [{"title": "Watch more movies", "year": "Now",
                 "pitch": "Collect more data to enable the algorithm."}]

    model = _require_model()

    high_rated = [
        m["title"]
        for m in sorted(movie_stats, key=lambda m: m["avg_score"], reverse=True)
        if m["avg_score"] >= STREAK_THRESHOLD
    ][:GROUP_PROMPT_LIMIT]

    prompt = f"""
    Act as a Cinema Curator AI.
    A group of friends has watched and highly rated the following movies: {', '.join(high_rated)}.

    Recommend 3 DISTINCT movies they should watch next.
    They should not be movies already in the list.

    For each recommendation provide:
    1. Title & Year
    2. A one-sentence "Pitch" explaining why it fits their specific group taste.

    Format the output as a JSON list of objects with keys: "title", "year", "pitch".
    """
    response = model.generate_content(
        prompt,
        generation_config={"response_mime_type": "application/json"},
    )
    return _parse_recommendations(response.text)


def generate_personal_recommendations(participant_name, ratings):
    """
    Suggest three movies for one participant from their own ratings.

    Returns:
        List of dicts with title, year and pitch
    """
    if len(ratings) < MIN_RATINGS_FOR_PROFILE:
        return [{"title": "Insufficient Data", "year": "N/A",
                 "pitch": f"This subject requires more observation (min {MIN_RATINGS_FOR_PROFILE} ratings)."}]

    model = _require_model()

    history = "; ".join(
        f"{r['title']} ({r['score']:g}/5{', ' + ', '.join(r['genres']) if r.get('genres') else ''})"
        for r in sorted(ratings, key=lambda r: r["score"], reverse=True)
    )

    prompt = f"""
    Act as a Cinema Curator AI.
    "{participant_name}" has rated these movies (score out of 5, then genres): {history}.

    Recommend 3 DISTINCT movies they have not rated that match what they scored highly
    and avoid what they scored poorly.

    For each recommendation provide:
    1. Title & Year
    2. A one-sentence "Pitch" explaining why it fits their taste.

    Format the output as a JSON list of objects with keys: "title", "year", "pitch".
    """
    response = model.generate_content(
        prompt,
        generation_config={"response_mime_type": "application/json"},
    )
    return _parse_recommendations(response.text)
