"""Core domain models for plaza-py."""

from plaza_py.core.models import SessionRecord, Vector3, random_color

__all__ = [
    "SessionRecord",
    "Vector3",
    "random_color",
]
