"""
Movie metadata lookup: TMDB for the canonical record, Gemini for flavour
text (IMDb score and a memorable quote).
"""

import re
import json
import concurrent.futures

import requests
import streamlit as st
from tmdbv3api import TMDb, Movie
from tmdbv3api.exceptions import TMDbException
from google.api_core import exceptions as google_exceptions

from utils import get_secret, get_gemini_model

TMDB_SEARCH_URL = "https://api.themoviedb.org/3/search/movie"
TMDB_POSTER_BASE = "https://image.tmdb.org/t/p/w500"
DIRECTOR_CHECK_CANDIDATES = 5
MAX_GENRES = 3


def _field(obj, name, default=None):
    """Read a field from either a dict or a tmdbv3api object."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def extract_director(credits):
    """Name of the first crew member credited as Director, or None."""
    for member in _field(credits, 'crew', []) or []:
        if _field(member, 'job', '') == 'Director':
            name = _field(member, 'name', '')
            if name:
                return name
    return None


def to_five_point(score_out_of_ten):
    """Rescale a /10 score to the app's /5 display string, e.g. 8.4 -> '4.2/5'."""
    return f"{score_out_of_ten / 2:.1f}/5"


def configure_tmdb():
    """
    Point tmdbv3api at the configured API key.

    Returns:
        The API key, or None if TMDB is not configured
    """
    api_key = get_secret("TMDB_API_KEY")
    if api_key:
        tmdb = TMDb()
        tmdb.api_key = api_key
    return api_key


def search_tmdb_candidates(query, api_key, year=None):
    """
    Search TMDB for a title, trying the release year first when given.

    Args:
        query: Free-text title
        api_key: TMDB API key
        year: Optional release year hint

    Returns:
        List of raw TMDB search results (possibly empty)
    """
    params = {"api_key": api_key, "query": query}

    if year:
        try:
            response = requests.get(TMDB_SEARCH_URL, params={**params, "year": year}, timeout=10)
            if response.status_code == 200:
                results = response.json().get("results", [])
                if results:
                    return results
        except requests.RequestException as e:
            st.warning(f"TMDB year search failed: {e}")

    response = requests.get(TMDB_SEARCH_URL, params=params, timeout=10)
    if response.status_code != 200:
        return []
    return response.json().get("results", [])


def _check_director(movie_id, hint_lower):
    try:
        director = extract_director(Movie().credits(movie_id))
    except (TMDbException, requests.RequestException):
        return movie_id, False
    return movie_id, bool(director and hint_lower in director.lower())


def pick_candidate(candidates, director_hint=None):
    """
    Choose the best search result.

    The most popular result wins unless a director hint is given, in which
    case the first of the top candidates whose director matches the hint is
    preferred.

    Returns:
        TMDB movie id
    """
    ranked = sorted(candidates, key=lambda m: m.get("popularity", 0), reverse=True)
    selected_id = ranked[0]["id"]

    if director_hint and len(director_hint.strip()) > 2:
        hint_lower = director_hint.strip().lower()
        top_ids = [m["id"] for m in ranked[:DIRECTOR_CHECK_CANDIDATES]]
        with concurrent.futures.ThreadPoolExecutor(max_workers=DIRECTOR_CHECK_CANDIDATES) as executor:
            checks = list(executor.map(lambda mid: _check_director(mid, hint_lower), top_ids))
        for movie_id, matched in checks:
            if matched:
                return movie_id

    return selected_id


def build_metadata(details, credits, director_hint=None):
    """
    Convert TMDB details and credits into the fields stored on a screening.

    Returns:
        Dictionary of metadata fields
    """
    genres = []
    for g in _field(details, 'genres', []) or []:
        name = _field(g, 'name', '')
        if name:
            genres.append(name)

    release_date = _field(details, 'release_date', '') or ''
    vote_average = _field(details, 'vote_average', 0)
    poster_path = _field(details, 'poster_path')

    return {
        "title": _field(details, 'title'),
        "synopsis": _field(details, 'overview'),
        "runtime": _field(details, 'runtime'),
        "director": extract_director(credits) or director_hint,
        "release_year": release_date.split('-')[0] if release_date else '',
        "genres": genres[:MAX_GENRES],
        "poster_url": f"{TMDB_POSTER_BASE}{poster_path}" if poster_path else None,
        "official_rating": to_five_point(vote_average) if vote_average else None,
        "quote": None,
    }


# =============================================================================
# GEMINI AUGMENTATION
# =============================================================================

def parse_imdb_rating(text):
    """Pull 'IMDB: 8.4' out of model output and rescale it, or None."""
    match = re.search(r"IMDB:\s*(\d+(?:\.\d+)?)", text or "", re.IGNORECASE)
    if not match:
        return None
    return to_five_point(float(match.group(1)))


def parse_quote(text):
    """Pull 'QUOTE: ...' (or the first double-quoted string) out of model output."""
    text = text or ""
    match = re.search(r"QUOTE:\s*(.+)", text, re.IGNORECASE) or re.search(r'"([^"]+)"', text)
    if not match:
        return None
    return re.sub(r'^"|"$', '', match.group(1).strip()).strip() or None


def augment_with_gemini(metadata, api_key):
    """
    Ask Gemini for the current IMDb score and an iconic quote.

    Falls back to a JSON-only quote prompt if the first request fails.

    Returns:
        The same metadata dict, updated in place
    """
    model = get_gemini_model(api_key)
    prompt = f"""
    Search for the movie "{metadata.get('title')}" ({metadata.get('release_year')}) on IMDb.
    1. Find the current numeric IMDb rating (out of 10).
    2. Find a memorable, iconic quote from the movie.

    Output ONLY raw text in this exact format:
    IMDB: [number]
    QUOTE: [quote string]
    """

    try:
        text = model.generate_content(prompt).text or ""
        official = parse_imdb_rating(text)
        if official:
            metadata["official_rating"] = official
        quote = parse_quote(text)
        if quote:
            metadata["quote"] = quote
        return metadata
    except (google_exceptions.GoogleAPIError, ValueError) as e:
        st.warning(f"Gemini lookup failed, falling back to a quote-only request: {e}")

    try:
        fallback_prompt = (
            f'Return a JSON object with a "quote" key containing a memorable quote from '
            f'"{metadata.get("title")}" ({metadata.get("release_year")}).'
        )
        response = model.generate_content(
            fallback_prompt,
            generation_config={"response_mime_type": "application/json"},
        )
        parsed = json.loads(response.text or "{}")
        if isinstance(parsed, dict) and parsed.get("quote"):
            metadata["quote"] = parsed["quote"]
    except (google_exceptions.GoogleAPIError, ValueError) as e:
        st.warning(f"Gemini fallback failed: {e}")

    return metadata


# =============================================================================
# ENTRY POINT
# =============================================================================

def fetch_movie_metadata(query, year=None, director_hint=None):
    """
    Resolve a typed title into canonical movie metadata.

    Args:
        query: Title as typed
        year: Optional release year hint
        director_hint: Optional director name used to disambiguate remakes

    Returns:
        Dictionary of metadata fields; only the user's own input when TMDB is
        unavailable or finds nothing; empty on unexpected failure
    """
    fallback = {"title": query, "release_year": year, "director": director_hint}

    api_key = configure_tmdb()
    if not api_key:
        st.error("❌ TMDB API key is missing")
        return fallback

    try:
        candidates = search_tmdb_candidates(query, api_key, year)
        if not candidates:
            st.warning(f"No movie found on TMDB for: {query}")
            return fallback

        selected_id = pick_candidate(candidates, director_hint)

        movie_api = Movie()
        metadata = build_metadata(
            movie_api.details(selected_id),
            movie_api.credits(selected_id),
            director_hint,
        )
    except (requests.RequestException, TMDbException, KeyError, ValueError) as e:
        st.error(f"❌ Metadata fetch failed: {str(e)}")
        return {}

    gemini_key = get_secret("GOOGLE_API_KEY")
    if gemini_key:
        augment_with_gemini(metadata, gemini_key)

    return metadata
