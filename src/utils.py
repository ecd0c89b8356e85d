"""
Configuration constants and shared helpers for the movie night tracker.
"""

import os
import streamlit as st
import google.generativeai as genai

# Rating scale
MAX_SCORE = 5.0
SCORE_STEP = 0.5
DEFAULT_RATING_SCORE = 2.5

# Aggregation thresholds
STREAK_THRESHOLD = 3.5
HARSHEST_CRITIC_MIN_ATTENDANCE = 2
TOP_DIRECTORS_LIMIT = 5
TOP_GENRES_LIMIT = 5
RECENT_MOVIES_LIMIT = 3
RECENT_QUOTES_WINDOW = 5

# Synergy heatmap bands
SYNERGY_HIGH = 80
SYNERGY_LOW = 60

UNKNOWN_LABEL = "Unknown"

# Rust, Gold, Taupe, Orange, Wood, Purple
AVATAR_COLORS = ["#b95c34", "#cba163", "#8c7b75", "#d97706", "#5d4037", "#5b21b6"]

DEFAULT_PARTICIPANTS = [
    {"id": "1", "name": "Alex", "avatarColor": "#b95c34"},
    {"id": "2", "name": "Jamie", "avatarColor": "#cba163"},
    {"id": "3", "name": "Nick", "avatarColor": "#8c7b75"},
    {"id": "4", "name": "Matt", "avatarColor": "#d97706"},
]

GEMINI_MODEL_NAME = "gemini-2.5-flash"


def get_secret(name, default=None):
    """
    Look up a secret in Streamlit secrets, falling back to the environment.

    Args:
        name: Secret key, e.g. "TMDB_API_KEY"
        default: Value returned when the secret is configured nowhere

    Returns:
        The secret value or default
    """
    try:
        if name in st.secrets:
            return st.secrets[name]
    except FileNotFoundError:
        # No secrets.toml at all
        pass
    return os.environ.get(name, default)


@st.cache_resource
def get_gemini_model(api_key, model_name=GEMINI_MODEL_NAME):
    """Get a configured Gemini model, created once per key."""
    genai.configure(api_key=api_key)
    return genai.GenerativeModel(model_name)


def format_score(value, digits=1, empty="-"):
    """Format an optional numeric score for display."""
    if value is None:
        return empty
    return f"{value:.{digits}f}"


def synergy_band(score):
    """
    Classify a synergy score for heatmap styling.

    Returns:
        'high', 'low', 'neutral' or 'none' when the pair has no shared movies
    """
    if score is None:
        return "none"
    if score >= SYNERGY_HIGH:
        return "high"
    if score <= SYNERGY_LOW:
        return "low"
    return "neutral"
