"""Data access layer."""

from pennywise.services.repositories.user_repository import UserRepository

__all__ = ["UserRepository"]
