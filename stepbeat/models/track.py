"""Catalog track and the schema external track payloads must satisfy."""
from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError

from stepbeat.errors import MalformedResponse


@dataclass(frozen=True)
class Track:
    """A catalog track; two tracks are equal when their URIs are."""
    uri: str
    name: str = field(compare=False)
    artist: str = field(compare=False)
    duration_sec: int = field(compare=False)
    image_url: str = field(compare=False)
    tempo: Optional[float] = field(default=None, compare=False)


class _Artist(BaseModel):
    name: str


class _Image(BaseModel):
    url: str


class _Album(BaseModel):
    images: List[_Image] = Field(min_length=1)


class CatalogTrackPayload(BaseModel):
    """Shape of one track object in a recommendations response."""
    uri: str = Field(min_length=1)
    name: str
    artists: List[_Artist] = Field(min_length=1)
    duration_ms: int = Field(ge=0)
    album: _Album

    def to_track(self) -> Track:
        return Track(
            uri=self.uri,
            name=self.name,
            artist=self.artists[0].name,
            duration_sec=self.duration_ms // 1000,
            image_url=self.album.images[0].url,
        )


def track_from_payload(payload: object) -> Track:
    """Validate one catalog track object. Raises MalformedResponse on any missing or mistyped field."""
    try:
        return CatalogTrackPayload.model_validate(payload).to_track()
    except ValidationError as e:
        raise MalformedResponse(f"invalid track payload: {e.error_count()} error(s)") from e


def tracks_from_response(response: object) -> List[Track]:
    """Validate a recommendations response ({"tracks": [...]}) into Tracks."""
    if not isinstance(response, dict) or not isinstance(response.get("tracks"), list):
        raise MalformedResponse("recommendations response has no 'tracks' list")
    return [track_from_payload(item) for item in response["tracks"]]
