"""Catalog schemas: artists, genres, categories, albums, songs."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

_CURRENT_YEAR_CAP = 2100


class ArtistIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    bio: str | None = None
    country: str | None = Field(default=None, max_length=100)
    formed_year: int | None = Field(default=None, ge=1800, le=_CURRENT_YEAR_CAP)


class ArtistUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    bio: str | None = None
    country: str | None = Field(default=None, max_length=100)
    formed_year: int | None = Field(default=None, ge=1800, le=_CURRENT_YEAR_CAP)
    is_active: bool | None = None


class ArtistOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    bio: str | None
    country: str | None
    formed_year: int | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class NamedIn(BaseModel):
    """Genre or category payload."""

    name: str = Field(min_length=1, max_length=100)
    description: str | None = None


class NamedUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    is_active: bool | None = None


class GenreOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    is_active: bool
    created_at: datetime


class CategoryOut(GenreOut):
    updated_at: datetime


class AlbumIn(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    artist_id: int
    genre_id: int | None = None
    release_year: int | None = Field(default=None, ge=1800, le=_CURRENT_YEAR_CAP)
    label: str | None = None
    catalog_number: str | None = None
    description: str | None = None
    duration_minutes: int | None = Field(default=None, ge=0)


class AlbumUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    artist_id: int | None = None
    genre_id: int | None = None
    release_year: int | None = Field(default=None, ge=1800, le=_CURRENT_YEAR_CAP)
    label: str | None = None
    catalog_number: str | None = None
    description: str | None = None
    duration_minutes: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


class AlbumOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    artist_id: int
    genre_id: int | None
    release_year: int | None
    label: str | None
    catalog_number: str | None
    description: str | None
    duration_minutes: int | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class SongIn(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    album_id: int
    track_number: int | None = Field(default=None, ge=1)
    duration_seconds: int | None = Field(default=None, ge=0)
    price: Decimal | None = Field(default=None, ge=0)
    format: str | None = Field(default=None, max_length=20)
    available: bool = True


class SongUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    track_number: int | None = Field(default=None, ge=1)
    duration_seconds: int | None = Field(default=None, ge=0)
    price: Decimal | None = Field(default=None, ge=0)
    format: str | None = Field(default=None, max_length=20)
    available: bool | None = None
    is_active: bool | None = None


class SongOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    album_id: int
    track_number: int | None
    duration_seconds: int | None
    price: Decimal | None
    format: str | None
    available: bool
    is_active: bool
    created_at: datetime
