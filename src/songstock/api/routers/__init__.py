"""API router initialization."""

# Hey future me, this is the main API router aggregator. It gets mounted under /api in
# main.py, so endpoints become /api/auth/login, /api/admin/users, ... Each router defines
# its own prefix and tags in its module. The health router is NOT in here; main.py mounts
# it at the root so probes hit /health directly.

from fastapi import APIRouter

from songstock.api.routers import (
    admin_users,
    albums,
    artists,
    auth,
    genres,
    health,
    orders,
    products,
    providers,
    songs,
)

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(admin_users.router)
api_router.include_router(artists.router)
api_router.include_router(albums.router)
api_router.include_router(songs.router)
api_router.include_router(genres.router)
api_router.include_router(genres.categories_router)
api_router.include_router(products.router)
api_router.include_router(providers.router)
api_router.include_router(orders.router)

__all__ = [
    "admin_users",
    "albums",
    "api_router",
    "artists",
    "auth",
    "genres",
    "health",
    "orders",
    "products",
    "providers",
    "songs",
]
