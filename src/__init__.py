"""
Movie Night Tracker - Source Package

This package contains the core functionality for the movie night log:
- models: Participants, screenings and ratings with their JSON format
- stats_engine: Leaderboard, awards, streaks, synergy and breakdowns
- data_store: Local JSON storage, Google Sheets sync and log editing
- metadata_service: TMDB lookup with Gemini-sourced ratings and quotes
- recommendation_service: Oracle taste profiles and watch-next picks
- utils: Utility functions and configuration constants
"""
