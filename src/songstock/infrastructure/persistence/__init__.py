"""Infrastructure persistence layer."""

from .database import Database
from .models import (
    AlbumModel,
    ArtistModel,
    Base,
    CategoryModel,
    GenreModel,
    OrderItemModel,
    OrderModel,
    OrderReviewModel,
    PasswordResetTokenModel,
    ProductImageModel,
    ProductModel,
    ProviderInvitationModel,
    ProviderModel,
    SongModel,
    UserModel,
    UserSessionModel,
)
from .repositories import (
    AlbumRepository,
    ArtistRepository,
    CategoryRepository,
    GenreRepository,
    OrderRepository,
    OrderReviewRepository,
    PasswordResetTokenRepository,
    ProductFilter,
    ProductImageRepository,
    ProductRepository,
    ProviderInvitationRepository,
    ProviderRepository,
    SongRepository,
    UserRepository,
    UserSessionRepository,
)

__all__ = [
    "AlbumModel",
    "AlbumRepository",
    "ArtistModel",
    "ArtistRepository",
    "Base",
    "CategoryModel",
    "CategoryRepository",
    "Database",
    "GenreModel",
    "GenreRepository",
    "OrderItemModel",
    "OrderModel",
    "OrderRepository",
    "OrderReviewModel",
    "OrderReviewRepository",
    "PasswordResetTokenModel",
    "PasswordResetTokenRepository",
    "ProductFilter",
    "ProductImageModel",
    "ProductImageRepository",
    "ProductModel",
    "ProductRepository",
    "ProviderInvitationModel",
    "ProviderInvitationRepository",
    "ProviderModel",
    "ProviderRepository",
    "SongModel",
    "SongRepository",
    "UserModel",
    "UserRepository",
    "UserSessionModel",
    "UserSessionRepository",
]
