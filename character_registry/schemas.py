"""Pydantic schemas for the registry's records and HTTP bodies."""

from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict


class Place(BaseModel):
    """Structured `origin` / `location` sub-record."""

    name: str
    url: str


class CharacterOut(BaseModel):
    """A stored character as returned by GET /characters.

    Scalar fields are opaque: only their presence is enforced on create, and
    records loaded from upstream are kept verbatim, so values are untyped.
    """

    model_config = ConfigDict(extra="allow")

    id: Any
    name: Any = None
    status: Any = None
    species: Any = None
    type: Any = None
    gender: Any = None
    origin: Any = None
    location: Any = None
    image: Any = None
    episode: Any = None
    url: Any = None
    created: Any = None


class MessageOut(BaseModel):
    message: str


class PopulationOut(BaseModel):
    message: str
    count: int


class HealthzOut(BaseModel):
    status: str
    character_count: int
    last_population_age: Optional[float] = None


class ProblemDetail(BaseModel):
    """RFC 7807-style problem response (simplified).

    ``errors`` is only set for validation failures and lists every violation.
    """

    type: str = "about:blank"
    title: str
    status: int
    detail: Optional[str] = None
    instance: Optional[str] = None
    errors: Optional[List[str]] = None
