"""Repository package exposing all repository modules."""

from . import health_repo, payouts_repo, users_repo

__all__ = [
    "users_repo",
    "payouts_repo",
    "health_repo",
]
