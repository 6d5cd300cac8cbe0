"""Catalog service: artists, genres, categories, albums and songs.

All five entities share the same life cycle (create, get, page, search,
partial update, soft delete), so one service covers them. Partial updates
take a ``changes`` dict holding only the fields the client actually sent
(``model_dump(exclude_unset=True)`` at the API layer); keys that are not
fields of the entity are rejected.
"""

import dataclasses
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from songstock.domain.entities import Album, Artist, Category, Genre, Song, utc_now
from songstock.domain.exceptions import (
    DuplicateEntityException,
    EntityNotFoundException,
    ValidationException,
)
from songstock.domain.value_objects import Page, PageRequest
from songstock.infrastructure.persistence.repositories import (
    AlbumRepository,
    ArtistRepository,
    CategoryRepository,
    GenreRepository,
    SongRepository,
)

logger = logging.getLogger(__name__)

_READ_ONLY_FIELDS = frozenset({"id", "created_at", "updated_at"})


def _apply_changes(entity: Any, changes: dict[str, Any]) -> None:
    field_names = {f.name for f in dataclasses.fields(entity)} - _READ_ONLY_FIELDS
    unknown = set(changes) - field_names
    if unknown:
        raise ValidationException(f"Unknown fields: {', '.join(sorted(unknown))}")
    for key, value in changes.items():
        setattr(entity, key, value)
    if hasattr(entity, "updated_at"):
        entity.updated_at = utc_now()


def _require_text(value: str | None, label: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationException(f"{label} is required")
    return text


class CatalogService:
    """CRUD and search for the music catalog."""

    def __init__(self, session: AsyncSession) -> None:
        self.artists = ArtistRepository(session)
        self.genres = GenreRepository(session)
        self.categories = CategoryRepository(session)
        self.albums = AlbumRepository(session)
        self.songs = SongRepository(session)

    # =========================================================================
    # ARTISTS
    # =========================================================================

    async def create_artist(self, artist: Artist) -> Artist:
        artist.name = _require_text(artist.name, "Artist name")
        created = await self.artists.add(artist)
        logger.info("Artist created: %s", created.name, extra={"artist_id": created.id})
        return created

    async def get_artist(self, artist_id: int) -> Artist:
        artist = await self.artists.get_by_id(artist_id)
        if artist is None:
            raise EntityNotFoundException("Artist", artist_id)
        return artist

    async def list_artists(self, page_request: PageRequest) -> Page[Artist]:
        return await self.artists.list_page(page_request)

    async def search_artists(self, query: str) -> list[Artist]:
        return await self.artists.search(query) if query.strip() else []

    async def update_artist(self, artist_id: int, changes: dict[str, Any]) -> Artist:
        artist = await self.get_artist(artist_id)
        _apply_changes(artist, changes)
        artist.name = _require_text(artist.name, "Artist name")
        await self.artists.update(artist)
        return artist

    async def delete_artist(self, artist_id: int) -> None:
        """Soft delete; refused while the artist still has active albums."""
        artist = await self.get_artist(artist_id)
        if await self.albums.count_active_by_artist(artist_id):
            raise ValidationException("Artist still has active albums")
        artist.is_active = False
        artist.updated_at = utc_now()
        await self.artists.update(artist)

    # =========================================================================
    # GENRES & CATEGORIES (unique names)
    # =========================================================================

    async def create_genre(self, genre: Genre) -> Genre:
        genre.name = _require_text(genre.name, "Genre name")
        if await self.genres.exists_by_name(genre.name):
            raise DuplicateEntityException("Genre", "name", genre.name)
        return await self.genres.add(genre)

    async def get_genre(self, genre_id: int) -> Genre:
        genre = await self.genres.get_by_id(genre_id)
        if genre is None:
            raise EntityNotFoundException("Genre", genre_id)
        return genre

    async def list_genres(self, page_request: PageRequest) -> Page[Genre]:
        return await self.genres.list_page(page_request)

    async def update_genre(self, genre_id: int, changes: dict[str, Any]) -> Genre:
        genre = await self.get_genre(genre_id)
        _apply_changes(genre, changes)
        genre.name = _require_text(genre.name, "Genre name")
        if await self.genres.exists_by_name(genre.name, exclude_id=genre_id):
            raise DuplicateEntityException("Genre", "name", genre.name)
        await self.genres.update(genre)
        return genre

    async def delete_genre(self, genre_id: int) -> None:
        genre = await self.get_genre(genre_id)
        genre.is_active = False
        await self.genres.update(genre)

    async def create_category(self, category: Category) -> Category:
        category.name = _require_text(category.name, "Category name")
        if await self.categories.exists_by_name(category.name):
            raise DuplicateEntityException("Category", "name", category.name)
        return await self.categories.add(category)

    async def get_category(self, category_id: int) -> Category:
        category = await self.categories.get_by_id(category_id)
        if category is None:
            raise EntityNotFoundException("Category", category_id)
        return category

    async def list_categories(self, page_request: PageRequest) -> Page[Category]:
        return await self.categories.list_page(page_request)

    async def update_category(
        self, category_id: int, changes: dict[str, Any]
    ) -> Category:
        category = await self.get_category(category_id)
        _apply_changes(category, changes)
        category.name = _require_text(category.name, "Category name")
        if await self.categories.exists_by_name(category.name, exclude_id=category_id):
            raise DuplicateEntityException("Category", "name", category.name)
        await self.categories.update(category)
        return category

    async def delete_category(self, category_id: int) -> None:
        category = await self.get_category(category_id)
        category.is_active = False
        category.updated_at = utc_now()
        await self.categories.update(category)

    # =========================================================================
    # ALBUMS
    # =========================================================================

    async def _check_album_refs(self, album: Album) -> None:
        await self.get_artist(album.artist_id)
        if album.genre_id is not None:
            await self.get_genre(album.genre_id)

    async def create_album(self, album: Album) -> Album:
        album.title = _require_text(album.title, "Album title")
        await self._check_album_refs(album)
        created = await self.albums.add(album)
        logger.info("Album created: %s", created.title, extra={"album_id": created.id})
        return created

    async def get_album(self, album_id: int) -> Album:
        album = await self.albums.get_by_id(album_id)
        if album is None:
            raise EntityNotFoundException("Album", album_id)
        return album

    async def list_albums(self, page_request: PageRequest) -> Page[Album]:
        return await self.albums.list_page(page_request)

    async def list_albums_by_artist(self, artist_id: int) -> list[Album]:
        await self.get_artist(artist_id)
        return await self.albums.list_by_artist(artist_id)

    async def list_albums_by_genre(self, genre_id: int) -> list[Album]:
        await self.get_genre(genre_id)
        return await self.albums.list_by_genre(genre_id)

    async def search_albums(self, query: str) -> list[Album]:
        return await self.albums.search(query) if query.strip() else []

    async def update_album(self, album_id: int, changes: dict[str, Any]) -> Album:
        album = await self.get_album(album_id)
        _apply_changes(album, changes)
        album.title = _require_text(album.title, "Album title")
        await self._check_album_refs(album)
        await self.albums.update(album)
        return album

    async def delete_album(self, album_id: int) -> None:
        album = await self.get_album(album_id)
        album.is_active = False
        album.updated_at = utc_now()
        await self.albums.update(album)

    # =========================================================================
    # SONGS
    # =========================================================================

    async def create_song(self, song: Song) -> Song:
        song.title = _require_text(song.title, "Song title")
        await self.get_album(song.album_id)
        if song.price is not None and song.price < 0:
            raise ValidationException("Price cannot be negative")
        return await self.songs.add(song)

    async def get_song(self, song_id: int) -> Song:
        song = await self.songs.get_by_id(song_id)
        if song is None:
            raise EntityNotFoundException("Song", song_id)
        return song

    async def list_songs(self, page_request: PageRequest) -> Page[Song]:
        return await self.songs.list_page(page_request)

    async def list_songs_by_album(self, album_id: int) -> list[Song]:
        await self.get_album(album_id)
        return await self.songs.list_by_album(album_id)

    async def search_songs(self, query: str) -> list[Song]:
        return await self.songs.search(query) if query.strip() else []

    async def update_song(self, song_id: int, changes: dict[str, Any]) -> Song:
        song = await self.get_song(song_id)
        _apply_changes(song, changes)
        song.title = _require_text(song.title, "Song title")
        if song.price is not None and song.price < 0:
            raise ValidationException("Price cannot be negative")
        await self.get_album(song.album_id)
        await self.songs.update(song)
        return song

    async def delete_song(self, song_id: int) -> None:
        song = await self.get_song(song_id)
        song.is_active = False
        await self.songs.update(song)
