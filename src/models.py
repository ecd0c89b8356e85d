"""
Data model for the movie night log: participants, watch events and ratings.

Field names are snake_case in Python; the persisted JSON uses the camelCase
keys of the app's backup format (userId, dateWatched, selectorId, ...).
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional


def _drop_none(payload):
    return {key: value for key, value in payload.items() if value is not None}


@dataclass
class Participant:
    id: str
    name: str
    avatar_color: str
    avatar_url: Optional[str] = None

    @classmethod
    def from_dict(cls, raw):
        return cls(
            id=str(raw["id"]),
            name=raw.get("name", ""),
            avatar_color=raw.get("avatarColor", ""),
            avatar_url=raw.get("avatarUrl"),
        )

    def to_dict(self):
        return _drop_none({
            "id": self.id,
            "name": self.name,
            "avatarColor": self.avatar_color,
            "avatarUrl": self.avatar_url,
        })


@dataclass
class Rating:
    user_id: str
    score: float
    comment: Optional[str] = None

    @classmethod
    def from_dict(cls, raw):
        return cls(
            user_id=str(raw["userId"]),
            score=raw["score"],
            comment=raw.get("comment"),
        )

    def to_dict(self):
        return _drop_none({
            "userId": self.user_id,
            "score": self.score,
            "comment": self.comment,
        })


@dataclass
class Movie:
    """A single screening: what was watched, when, who picked it and how it landed."""

    id: str
    title: str
    date_watched: date
    selector_id: str
    ratings: List[Rating] = field(default_factory=list)
    poster_url: Optional[str] = None
    synopsis: Optional[str] = None
    runtime: Optional[int] = None
    director: Optional[str] = None
    release_year: Optional[str] = None
    genres: Optional[List[str]] = None
    official_rating: Optional[str] = None
    quote: Optional[str] = None
    venue: Optional[str] = None

    @classmethod
    def from_dict(cls, raw):
        """
        Build a Movie from its persisted form.

        Args:
            raw: Dictionary with camelCase keys

        Returns:
            Movie

        Raises:
            ValueError: if dateWatched is not an ISO calendar date
        """
        watched = raw["dateWatched"]
        if not isinstance(watched, date):
            # Accept full ISO timestamps as well as plain dates
            watched = date.fromisoformat(str(watched)[:10])

        genres = raw.get("genres")
        release_year = raw.get("releaseYear")
        return cls(
            id=str(raw["id"]),
            title=raw.get("title", ""),
            date_watched=watched,
            selector_id=str(raw.get("selectorId", "")),
            ratings=[Rating.from_dict(r) for r in raw.get("ratings") or []],
            poster_url=raw.get("posterUrl"),
            synopsis=raw.get("synopsis"),
            runtime=raw.get("runtime"),
            director=raw.get("director"),
            release_year=str(release_year) if release_year is not None else None,
            genres=list(genres) if genres is not None else None,
            official_rating=raw.get("officialRating"),
            quote=raw.get("quote"),
            venue=raw.get("venue"),
        )

    def to_dict(self):
        return _drop_none({
            "id": self.id,
            "title": self.title,
            "dateWatched": self.date_watched.isoformat(),
            "selectorId": self.selector_id,
            "ratings": [r.to_dict() for r in self.ratings],
            "posterUrl": self.poster_url,
            "synopsis": self.synopsis,
            "runtime": self.runtime,
            "director": self.director,
            "releaseYear": self.release_year,
            "genres": list(self.genres) if self.genres is not None else None,
            "officialRating": self.official_rating,
            "quote": self.quote,
            "venue": self.venue,
        })


@dataclass
class AppData:
    """Snapshot of the whole log: every screening and the current roster."""

    movies: List[Movie] = field(default_factory=list)
    participants: List[Participant] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw):
        return cls(
            movies=[Movie.from_dict(m) for m in raw.get("movies") or []],
            participants=[Participant.from_dict(p) for p in raw.get("participants") or []],
        )

    def to_dict(self):
        return {
            "movies": [m.to_dict() for m in self.movies],
            "participants": [p.to_dict() for p in self.participants],
        }

    def find_participant(self, participant_id):
        """Return the participant with this id, or None if not on the roster."""
        for participant in self.participants:
            if participant.id == participant_id:
                return participant
        return None
