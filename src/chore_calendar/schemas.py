from __future__ import annotations

import datetime as dt
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .models import Category

# Older clients send 'dueDate' for the date and 'type' for the category
_LEGACY_KEYS = {"dueDate": "date", "type": "category"}


def _apply_legacy_keys(data: Any) -> Any:
    """
    Map legacy request keys onto current field names. A current key always
    wins over its legacy alias.
    """
    if not isinstance(data, dict):
        return data
    out = dict(data)
    for legacy, current in _LEGACY_KEYS.items():
        if legacy in out:
            value = out.pop(legacy)
            if current not in out and value is not None:
                out[current] = value
    return out


def _strip(v: Optional[str]) -> Optional[str]:
    return v.strip() if isinstance(v, str) else v


# PUBLIC_INTERFACE
class ChoreCreate(BaseModel):
    """
    Schema for creating a new chore.

    title and assignee are required for every category except the
    quota-limited one, where they are defaulted by the scheduler.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "date": "2025-02-03",
                "category": "Dinner",
                "title": "Tacos",
                "assignee": "Adam",
            }
        }
    )

    date: dt.date = Field(..., description="Calendar date (YYYY-MM-DD) the chore is scheduled on")
    category: Category = Field(default=Category.OTHER, description="Chore category")
    title: Optional[str] = Field(default=None, description="Display title", max_length=200)
    assignee: Optional[str] = Field(default=None, description="Household member responsible")

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_keys(cls, data: Any) -> Any:
        return _apply_legacy_keys(data)

    @field_validator("title", "assignee")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return _strip(v)


# PUBLIC_INTERFACE
class ChoreUpdate(BaseModel):
    """
    Schema for updating an existing chore.
    All fields are optional; only provided fields will be updated.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "done": True,
            }
        }
    )

    date: Optional[dt.date] = Field(default=None, description="Move the chore to this date")
    category: Optional[Category] = Field(default=None, description="Chore category")
    title: Optional[str] = Field(default=None, description="Display title", max_length=200)
    assignee: Optional[str] = Field(default=None, description="Household member responsible")
    done: Optional[bool] = Field(default=None, description="Completion status flag")

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_keys(cls, data: Any) -> Any:
        return _apply_legacy_keys(data)

    @field_validator("title", "assignee")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return _strip(v)

    def provided(self) -> dict:
        """Return only the fields the caller explicitly set."""
        return {name: getattr(self, name) for name in self.model_fields_set}


# PUBLIC_INTERFACE
class ChoreOut(BaseModel):
    """
    Schema returned by the API for a chore.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "3f0c4b0e8e2b4a0c9f6f1d2a7b5c9e11",
                "date": "2025-02-03",
                "category": "NoDinner",
                "title": "Make your own",
                "assignee": "",
                "done": False,
                "created_at": "2025-01-25T10:15:30.123456",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the chore")
    date: dt.date = Field(..., description="Scheduled date")
    category: Category = Field(..., description="Chore category")
    title: str = Field(..., description="Display title")
    assignee: str = Field(..., description="Household member responsible (empty when none)")
    done: bool = Field(..., description="Completion status flag")
    created_at: dt.datetime = Field(..., description="Creation timestamp")


class WeekOut(BaseModel):
    """A Monday-Sunday window and the chores scheduled inside it."""

    start: dt.date
    end: dt.date
    items: List[ChoreOut]


class QuotaOut(BaseModel):
    """Usage of the weekly 'make your own' allowance for one week."""

    start: dt.date
    end: dt.date
    category: Category
    used: int
    cap: int
    remaining: int


# PUBLIC_INTERFACE
class CommentCreate(BaseModel):
    """
    Draft of a comment. The photo, if any, travels separately as a binary
    attachment and is never part of this schema.
    """

    date: dt.date = Field(..., description="Calendar date the comment belongs to")
    name: Optional[str] = Field(default=None, description="Display name; ignored when anonymous")
    anonymous: bool = Field(default=False, description="Hide the author's name")
    text: str = Field(default="", description="Comment body; may be empty when a photo is attached")

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        v = _strip(v)
        return v or None

    @field_validator("text", mode="before")
    @classmethod
    def strip_body(cls, v: Optional[str]) -> str:
        return _strip(v) or ""


# PUBLIC_INTERFACE
class CommentOut(BaseModel):
    """
    Schema returned by the API for a comment.
    """

    id: str
    date: dt.date
    name: Optional[str] = None
    anonymous: bool
    text: str
    photo_url: Optional[str] = None
    created_at: dt.datetime


# PUBLIC_INTERFACE
class RecipeOut(BaseModel):
    """
    Recipe suggestion for a meal, using TheMealDB's field names so existing
    clients can read it unchanged.
    """

    idMeal: Optional[str] = None
    strMeal: str
    strCategory: Optional[str] = None
    strArea: Optional[str] = None
    strInstructions: Optional[str] = None
    strMealThumb: Optional[str] = None
    strSource: Optional[str] = None
    strYoutube: Optional[str] = None
