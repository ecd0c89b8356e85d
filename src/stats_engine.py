"""
Aggregate analytics for the movie night log.

Every function here is a pure computation over an AppData snapshot: no I/O,
no Streamlit calls, no state kept between invocations. compute_statistics()
is the single entry point used by the Stats page; the smaller helpers are
exposed for the dashboard, the log and the recommendation prompts.

Ties are resolved by discovery order. Participants are always visited in
roster order and every ranking uses Python's stable sort, so for a fixed
snapshot the winner of an award never changes between runs.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from models import Movie, Participant
from utils import (
    MAX_SCORE,
    STREAK_THRESHOLD,
    HARSHEST_CRITIC_MIN_ATTENDANCE,
    TOP_DIRECTORS_LIMIT,
    TOP_GENRES_LIMIT,
    RECENT_MOVIES_LIMIT,
    RECENT_QUOTES_WINDOW,
    UNKNOWN_LABEL,
)


@dataclass(frozen=True)
class LeaderboardEntry:
    participant: Participant
    avg_given: float
    attendance_count: int

    @property
    def id(self):
        return self.participant.id

    @property
    def name(self):
        return self.participant.name


@dataclass(frozen=True)
class CuratorAward:
    participant: Participant
    average: float


@dataclass(frozen=True)
class StreakEntry:
    participant_id: str
    participant: Optional[Participant]
    count: int


@dataclass(frozen=True)
class SynergyPair:
    participant_1: Participant
    participant_2: Participant
    score: float


@dataclass(frozen=True)
class DirectorStat:
    name: str
    average: float
    count: int


@dataclass(frozen=True)
class DecadeStat:
    label: str
    count: int


@dataclass(frozen=True)
class VenueStat:
    name: str
    count: int


@dataclass(frozen=True)
class GenreStat:
    name: str
    count: int


@dataclass(frozen=True)
class StatsBundle:
    leaderboard: List[LeaderboardEntry] = field(default_factory=list)
    best_curator: Optional[CuratorAward] = None
    harshest_critic: Optional[LeaderboardEntry] = None
    most_frequent: Optional[LeaderboardEntry] = None
    streaks: List[StreakEntry] = field(default_factory=list)
    synergy_matrix: Dict[str, Dict[str, Optional[float]]] = field(default_factory=dict)
    highest_synergy: Optional[SynergyPair] = None
    lowest_synergy: Optional[SynergyPair] = None
    directors: List[DirectorStat] = field(default_factory=list)
    decades: List[DecadeStat] = field(default_factory=list)
    venues: List[VenueStat] = field(default_factory=list)
    genres: List[GenreStat] = field(default_factory=list)


@dataclass(frozen=True)
class DashboardSummary:
    total_screenings: int
    group_average: Optional[float]
    active_members: int
    recent_movies: List[Movie]
    recent_quotes: List[Movie]


# =============================================================================
# PER-MOVIE HELPERS
# =============================================================================

def find_rating(movie, user_id):
    """
    Find a participant's rating on a movie.

    Duplicate ratings from the same user are tolerated: the first one wins.

    Returns:
        Rating or None
    """
    for rating in movie.ratings:
        if rating.user_id == user_id:
            return rating
    return None


def movie_average(movie):
    """Mean score of a movie, 0.0 when nobody rated it."""
    if not movie.ratings:
        return 0.0
    return sum(r.score for r in movie.ratings) / len(movie.ratings)


def _scores_by_user(movie):
    scores = {}
    for rating in movie.ratings:
        scores.setdefault(rating.user_id, rating.score)
    return scores


def participant_name(snapshot, participant_id):
    """Display name for an id, or "Unknown" if they are no longer on the roster."""
    participant = snapshot.find_participant(participant_id)
    return participant.name if participant else UNKNOWN_LABEL


# =============================================================================
# LEADERBOARD & AWARDS
# =============================================================================

def build_leaderboard(snapshot, movie_scores=None):
    """
    Annotate every participant with the average score they give and how many
    screenings they attended (i.e. rated).

    Args:
        snapshot: AppData
        movie_scores: Optional precomputed list of {user_id: score} per movie

    Returns:
        List of LeaderboardEntry in roster order
    """
    if movie_scores is None:
        movie_scores = [_scores_by_user(m) for m in snapshot.movies]

    leaderboard = []
    for participant in snapshot.participants:
        given = [scores[participant.id] for scores in movie_scores if participant.id in scores]
        avg_given = sum(given) / len(given) if given else 0.0
        leaderboard.append(LeaderboardEntry(participant, avg_given, len(given)))
    return leaderboard


def sort_leaderboard(leaderboard, key="avg_given"):
    """Stable descending sort of leaderboard entries for display."""
    if key not in ("avg_given", "attendance_count"):
        raise ValueError(f"Unsupported leaderboard sort key: {key}")
    return sorted(leaderboard, key=lambda entry: getattr(entry, key), reverse=True)


def find_best_curator(snapshot, movie_averages=None):
    """
    The participant whose picks score best on average.

    Selectors that are no longer on the roster cannot win.

    Returns:
        CuratorAward or None when nobody has picked a movie
    """
    if movie_averages is None:
        movie_averages = [movie_average(m) for m in snapshot.movies]

    picker_stats = {}
    for movie, avg in zip(snapshot.movies, movie_averages):
        stat = picker_stats.setdefault(movie.selector_id, [0.0, 0])
        stat[0] += avg
        stat[1] += 1

    best = None
    for participant in snapshot.participants:
        stat = picker_stats.get(participant.id)
        if not stat:
            continue
        avg = stat[0] / stat[1]
        if best is None or avg > best.average:
            best = CuratorAward(participant, avg)
    return best


def find_harshest_critic(leaderboard):
    """Lowest average given among participants with at least two screenings."""
    qualified = [e for e in leaderboard if e.attendance_count >= HARSHEST_CRITIC_MIN_ATTENDANCE]
    if not qualified:
        return None
    return sorted(qualified, key=lambda e: e.avg_given)[0]


def find_most_frequent(leaderboard):
    """Participant with the highest attendance, no minimum."""
    if not leaderboard:
        return None
    return sorted(leaderboard, key=lambda e: e.attendance_count, reverse=True)[0]


# =============================================================================
# STREAKS
# =============================================================================

def compute_streaks(snapshot, movie_averages=None):
    """
    Current run of well-received picks per selector.

    Movies are replayed oldest first (same-day screenings keep their log
    order). A pick averaging at least STREAK_THRESHOLD extends the selector's
    run, anything lower resets it. Other participants are untouched.

    Returns:
        List of StreakEntry with a nonzero count, longest first
    """
    if movie_averages is None:
        movie_averages = [movie_average(m) for m in snapshot.movies]

    counters = {p.id: 0 for p in snapshot.participants}
    replay = sorted(zip(snapshot.movies, movie_averages), key=lambda pair: pair[0].date_watched)

    for movie, avg in replay:
        if avg >= STREAK_THRESHOLD:
            counters[movie.selector_id] = counters.get(movie.selector_id, 0) + 1
        else:
            counters[movie.selector_id] = 0

    streaks = [
        StreakEntry(pid, snapshot.find_participant(pid), count)
        for pid, count in counters.items()
        if count > 0
    ]
    return sorted(streaks, key=lambda s: s.count, reverse=True)


# =============================================================================
# SYNERGY
# =============================================================================

def synergy_score(scores_1, scores_2):
    """
    Agreement between two aligned score vectors on a 0-100 scale.

    100 means identical scores, 0 means a full MAX_SCORE apart every time.

    Returns:
        Float, or None when the vectors are empty
    """
    if len(scores_1) == 0:
        return None
    diffs = np.abs(np.asarray(scores_1, dtype=float) - np.asarray(scores_2, dtype=float))
    return float(100 * (1 - diffs.mean() / MAX_SCORE))


def _shared_scores(movie_scores, id_1, id_2):
    left, right = [], []
    for scores in movie_scores:
        if id_1 in scores and id_2 in scores:
            left.append(scores[id_1])
            right.append(scores[id_2])
    return left, right


def compute_synergy(snapshot, movie_scores=None):
    """
    Pairwise synergy for every ordered pair of participants.

    Each unordered pair is computed once and mirrored. Cells are None on the
    diagonal and for pairs without a shared movie. The global best and worst
    pairs only consider pairs where the first id sorts before the second.

    Returns:
        Tuple of (matrix, highest SynergyPair or None, lowest SynergyPair or None)
    """
    if movie_scores is None:
        movie_scores = [_scores_by_user(m) for m in snapshot.movies]

    matrix = {}
    highest = None
    lowest = None

    for p1 in snapshot.participants:
        row = matrix.setdefault(p1.id, {})
        for p2 in snapshot.participants:
            if p1.id == p2.id:
                row[p2.id] = None
                continue

            mirrored = matrix.get(p2.id, {})
            if p1.id in mirrored:
                score = mirrored[p1.id]
            else:
                score = synergy_score(*_shared_scores(movie_scores, p1.id, p2.id))
            row[p2.id] = score

            if score is None or not p1.id < p2.id:
                continue
            if highest is None or score > highest.score:
                highest = SynergyPair(p1, p2, score)
            if lowest is None or score < lowest.score:
                lowest = SynergyPair(p1, p2, score)

    return matrix, highest, lowest


# =============================================================================
# CATEGORICAL BREAKDOWNS
# =============================================================================

def director_stats(movies, movie_averages=None, limit=TOP_DIRECTORS_LIMIT):
    """Average movie score per director, best first. Movies without a director are skipped."""
    if movie_averages is None:
        movie_averages = [movie_average(m) for m in movies]

    totals = {}
    for movie, avg in zip(movies, movie_averages):
        if not movie.director:
            continue
        stat = totals.setdefault(movie.director, [0.0, 0])
        stat[0] += avg
        stat[1] += 1

    directors = [DirectorStat(name, total / count, count) for name, (total, count) in totals.items()]
    directors.sort(key=lambda d: d.average, reverse=True)
    return directors[:limit] if limit is not None else directors


def decade_label(release_year):
    """'1994' -> '1990s'. Returns None for a missing year."""
    if not release_year:
        return None
    return str(release_year)[:3] + "0s"


def decade_stats(movies):
    """Screenings per release decade, ordered by label."""
    counts = {}
    for movie in movies:
        label = decade_label(movie.release_year)
        if label is None:
            continue
        counts[label] = counts.get(label, 0) + 1
    return [DecadeStat(label, counts[label]) for label in sorted(counts)]


def venue_stats(movies):
    """Screenings per venue, busiest first. A missing venue counts as 'Unknown'."""
    counts = {}
    for movie in movies:
        venue = movie.venue or UNKNOWN_LABEL
        counts[venue] = counts.get(venue, 0) + 1
    venues = [VenueStat(name, count) for name, count in counts.items()]
    return sorted(venues, key=lambda v: v.count, reverse=True)


def genre_stats(movies, limit=TOP_GENRES_LIMIT):
    """Most frequent genres; a movie counts once towards each of its genres."""
    counts = {}
    for movie in movies:
        for genre in movie.genres or []:
            counts[genre] = counts.get(genre, 0) + 1
    genres = sorted((GenreStat(name, count) for name, count in counts.items()),
                    key=lambda g: g.count, reverse=True)
    return genres[:limit] if limit is not None else genres


# =============================================================================
# ENTRY POINTS
# =============================================================================

def compute_statistics(snapshot):
    """
    Derive every statistic shown on the Stats page from one snapshot.

    Args:
        snapshot: AppData

    Returns:
        StatsBundle
    """
    movie_scores = [_scores_by_user(m) for m in snapshot.movies]
    movie_averages = [movie_average(m) for m in snapshot.movies]

    leaderboard = build_leaderboard(snapshot, movie_scores)
    matrix, highest, lowest = compute_synergy(snapshot, movie_scores)

    return StatsBundle(
        leaderboard=leaderboard,
        best_curator=find_best_curator(snapshot, movie_averages),
        harshest_critic=find_harshest_critic(leaderboard),
        most_frequent=find_most_frequent(leaderboard),
        streaks=compute_streaks(snapshot, movie_averages),
        synergy_matrix=matrix,
        highest_synergy=highest,
        lowest_synergy=lowest,
        directors=director_stats(snapshot.movies, movie_averages),
        decades=decade_stats(snapshot.movies),
        venues=venue_stats(snapshot.movies),
        genres=genre_stats(snapshot.movies),
    )


def compute_dashboard_summary(snapshot):
    """Headline numbers and most recent screenings for the dashboard."""
    movies = snapshot.movies
    newest_first = sorted(movies, key=lambda m: m.date_watched, reverse=True)

    group_average = None
    if movies:
        group_average = sum(movie_average(m) for m in movies) / len(movies)

    return DashboardSummary(
        total_screenings=len(movies),
        group_average=group_average,
        active_members=len(snapshot.participants),
        recent_movies=newest_first[:RECENT_MOVIES_LIMIT],
        recent_quotes=[m for m in newest_first[:RECENT_QUOTES_WINDOW] if m.quote],
    )
