"""Data access repositories for OnionPost domain entities."""

from .communities import CommunityRepository
from .posts import CommentRepository, PostRepository
from .profiles import ProfileRepository
from .users import UserRepository

__all__ = [
    "CommentRepository",
    "CommunityRepository",
    "PostRepository",
    "ProfileRepository",
    "UserRepository",
]
