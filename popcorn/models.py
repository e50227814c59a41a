# popcorn/models.py
import re
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional

MISSING = "N/A"  # OMDb placeholder for unknown fields

def _text(value) -> str:
    if value is None or value == MISSING:
        return ""
    return str(value)

def parse_runtime(raw) -> Optional[int]:
    """'136 min' -> 136; 'N/A' or garbage -> None."""
    m = re.match(r"\s*(\d+)\s*min", raw or "")
    return int(m.group(1)) if m else None

def parse_rating(raw) -> Optional[float]:
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


class StatusKind(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERRORED = "errored"


@dataclass(frozen=True)
class SessionStatus:
    kind: StatusKind = StatusKind.IDLE
    message: str = ""

    @classmethod
    def idle(cls): return cls(StatusKind.IDLE)
    @classmethod
    def loading(cls): return cls(StatusKind.LOADING)
    @classmethod
    def ready(cls): return cls(StatusKind.READY)
    @classmethod
    def errored(cls, message: str): return cls(StatusKind.ERRORED, message)

    @property
    def is_loading(self) -> bool:
        return self.kind is StatusKind.LOADING


# the detail slot moves through the same states as the search session
DetailStatus = SessionStatus


@dataclass
class SearchResultItem:
    id: str
    title: str
    year: str
    poster_url: str = ""

    @classmethod
    def from_omdb(cls, raw: dict) -> "SearchResultItem":
        return cls(id=raw["imdbID"], title=_text(raw.get("Title")),
                   year=_text(raw.get("Year")), poster_url=_text(raw.get("Poster")))

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DetailRecord:
    id: str
    title: str
    year: str
    poster_url: str = ""
    runtime_minutes: Optional[int] = None
    genre: str = ""
    imdb_rating: Optional[float] = None
    plot: str = ""
    actors: str = ""
    director: str = ""
    released: str = ""

    @classmethod
    def from_omdb(cls, raw: dict) -> "DetailRecord":
        return cls(
            id=raw["imdbID"],
            title=_text(raw.get("Title")),
            year=_text(raw.get("Year")),
            poster_url=_text(raw.get("Poster")),
            runtime_minutes=parse_runtime(raw.get("Runtime")),
            genre=_text(raw.get("Genre")),
            imdb_rating=parse_rating(raw.get("imdbRating")),
            plot=_text(raw.get("Plot")),
            actors=_text(raw.get("Actors")),
            director=_text(raw.get("Director")),
            released=_text(raw.get("Released")),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class WatchedEntry:
    id: str
    title: str
    year: str
    poster_url: str
    imdb_rating: Optional[float]
    runtime_minutes: Optional[int]
    user_rating: int  # 1..max_rating

    @classmethod
    def from_detail(cls, detail: DetailRecord, user_rating: int) -> "WatchedEntry":
        return cls(id=detail.id, title=detail.title, year=detail.year,
                   poster_url=detail.poster_url, imdb_rating=detail.imdb_rating,
                   runtime_minutes=detail.runtime_minutes, user_rating=user_rating)

    @classmethod
    def from_dict(cls, raw: dict) -> "WatchedEntry":
        """Strict: raises KeyError/TypeError/ValueError on a bad record."""
        return cls(
            id=str(raw["id"]),
            title=str(raw["title"]),
            year=str(raw.get("year", "")),
            poster_url=str(raw.get("poster_url", "")),
            imdb_rating=None if raw.get("imdb_rating") is None else float(raw["imdb_rating"]),
            runtime_minutes=None if raw.get("runtime_minutes") is None else int(raw["runtime_minutes"]),
            user_rating=int(raw["user_rating"]),
        )

    def to_dict(self) -> dict:
        return asdict(self)
