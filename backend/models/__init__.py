"""SQLModel models package."""

from .follow import Follow

__all__ = ["Follow"]
