from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional, TypedDict


# PUBLIC_INTERFACE
class Category(str, Enum):
    """
    Closed set of chore categories.

    Declaration order is the tie-break order used when listing several
    chores that share a date.
    """

    DINNER = "Dinner"
    OTHER = "Other"
    NO_DINNER = "NoDinner"

    @property
    def sort_index(self) -> int:
        return list(Category).index(self)


# PUBLIC_INTERFACE
class ChoreEntity(TypedDict):
    """
    A lightweight domain model representing a chore for non-ORM storage
    backends.

    Fields:
    - id: Opaque unique identifier (hex string)
    - date: Calendar date the chore is scheduled on (no time component)
    - category: One of Category
    - title: Display title
    - assignee: Household member responsible; empty for 'make your own' days
    - done: Completion flag
    - created_at: Local creation timestamp
    """

    id: str
    date: date
    category: Category
    title: str
    assignee: str
    done: bool
    created_at: datetime


# PUBLIC_INTERFACE
class CommentEntity(TypedDict):
    """
    A comment attached to a calendar date, optionally carrying a photo that
    lives on an external image host.
    """

    id: str
    date: date
    name: Optional[str]
    anonymous: bool
    text: str
    photo_url: Optional[str]
    created_at: datetime
