"""Aggregate import for all API route modules."""

from . import (
    auth,
    users,
    children,
    books,
    achievements,
    prizes,
)

__all__ = [
    "auth",
    "users",
    "children",
    "books",
    "achievements",
    "prizes",
]
