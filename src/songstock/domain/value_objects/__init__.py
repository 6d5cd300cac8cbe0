"""Value objects for paging, sorting and admin user filtering."""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar

from songstock.domain.entities import UserRole, VerificationStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")


class SortDirection(str, Enum):
    """Sort direction of a paged query."""

    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: str | None, default: "SortDirection") -> "SortDirection":
        """Parse "asc"/"desc" case-insensitively.

        None keeps the default; any other value is ascending.
        """
        if value is None:
            return default
        return cls.DESC if value.strip().lower() == "desc" else cls.ASC


@dataclass(frozen=True)
class PageRequest:
    """0-based page index plus page size and ordering."""

    page: int = 0
    size: int = 20
    sort_by: str = "createdAt"
    sort_direction: SortDirection = SortDirection.DESC

    def __post_init__(self) -> None:
        if self.page < 0:
            raise ValueError("page must be >= 0")
        if self.size < 1:
            raise ValueError("size must be >= 1")

    @property
    def offset(self) -> int:
        """Number of rows to skip."""
        return self.page * self.size


@dataclass
class Page(Generic[T]):
    """One page of results plus the total count across all pages."""

    items: list[T]
    total: int
    page: int
    size: int

    @property
    def total_pages(self) -> int:
        """Number of pages needed for total rows (0 when empty)."""
        return math.ceil(self.total / self.size) if self.size else 0

    @property
    def has_next(self) -> bool:
        """True when another page follows this one."""
        return self.page + 1 < self.total_pages

    def map(self, fn: Callable[[T], U]) -> "Page[U]":
        """Return a page with fn applied to every item."""
        return Page(
            items=[fn(item) for item in self.items],
            total=self.total,
            page=self.page,
            size=self.size,
        )


# Hey future me - these two return None for empty OR unrecognized input, which means
# "don't filter on this". Invalid strings are not an error for the admin list endpoint.
def parse_user_role(value: str | None) -> UserRole | None:
    """Parse a role name case-insensitively, None if empty or unknown."""
    if value is None or not value.strip():
        return None
    role = UserRole.__members__.get(value.strip().upper())
    if role is None:
        logger.debug("Ignoring unknown role filter value: %r", value)
    return role


def parse_verification_status(value: str | None) -> VerificationStatus | None:
    """Parse a verification status case-insensitively, None if empty or unknown."""
    if value is None or not value.strip():
        return None
    status = VerificationStatus.__members__.get(value.strip().upper())
    if status is None:
        logger.debug("Ignoring unknown verification status filter value: %r", value)
    return status


@dataclass
class UserSearchFilter:
    """Criteria for the admin user list.

    Every criterion is optional; None means the filter is not applied.
    """

    search_query: str | None = None
    role: UserRole | None = None
    is_active: bool | None = None
    verification_status: VerificationStatus | None = None
    created_after: datetime | None = None
    created_before: datetime | None = None
    page_request: PageRequest = field(default_factory=PageRequest)

    @property
    def normalized_query(self) -> str | None:
        """Stripped search text, None when blank."""
        if self.search_query is None:
            return None
        text = self.search_query.strip()
        return text or None


__all__ = [
    "Page",
    "PageRequest",
    "SortDirection",
    "UserSearchFilter",
    "parse_user_role",
    "parse_verification_status",
]
