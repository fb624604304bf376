"""
Placement of chores on the calendar, including the weekly cap on
'make your own' days.

The cap is checked against the Monday-Sunday window of the target date on
every mutation that can change which week a capped chore belongs to
(create, date move, promotion into the capped category). The check and the
write happen inside the repository's ``atomic()`` section so two
concurrent writers cannot both see a count below the cap.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from .errors import NotFoundError, QuotaExceededError, ValidationError
from .models import Category, ChoreEntity
from .repositories import ChoreRepository
from .schemas import ChoreCreate, ChoreUpdate
from .settings import Settings
from .week import WeekWindow, week_window

logger = logging.getLogger(__name__)

# Fields that may never be explicitly nulled by an update
_NON_NULLABLE = ("date", "category", "title", "done")


@dataclass(frozen=True)
class QuotaStatus:
    week: WeekWindow
    category: Category
    used: int
    cap: int

    @property
    def remaining(self) -> int:
        return max(0, self.cap - self.used)


# PUBLIC_INTERFACE
class QuotaScheduler:
    """Create, list, move and delete chores while enforcing the weekly cap."""

    def __init__(
        self,
        repo: ChoreRepository,
        *,
        cap: int = 2,
        limited_category: Category = Category.NO_DINNER,
        default_title: str = "Make your own",
        default_assignee: str = "",
    ) -> None:
        if cap < 0:
            raise ValueError("cap must be >= 0")
        self.repo = repo
        self.cap = cap
        self.limited_category = Category(limited_category)
        self.default_title = default_title
        self.default_assignee = default_assignee

    @classmethod
    def from_settings(cls, repo: ChoreRepository, settings: Settings) -> "QuotaScheduler":
        return cls(
            repo,
            cap=settings.quota_cap,
            limited_category=Category(settings.quota_category),
            default_title=settings.quota_title,
            default_assignee=settings.quota_assignee,
        )

    def _now(self) -> datetime:
        return datetime.now()

    # ---- reads ----

    def list(self, start: Optional[date] = None, end: Optional[date] = None) -> List[ChoreEntity]:
        """
        Return all chores, or only those dated within the inclusive [start, end].
        """
        if start is None and end is None:
            return self.repo.list_all()
        if start is None or end is None:
            raise ValidationError("start and end must be given together")
        if start > end:
            raise ValidationError("start must not be after end")
        return self.repo.list_by_date_range(start, end)

    def get(self, chore_id: str) -> ChoreEntity:
        entity = self.repo.get(chore_id)
        if entity is None:
            raise NotFoundError(chore_id)
        return entity

    def list_week(self, d: date) -> List[ChoreEntity]:
        window = week_window(d)
        return self.repo.list_by_date_range(window.start, window.end)

    def quota_status(self, d: date) -> QuotaStatus:
        window = week_window(d)
        used = self.repo.count_in_range(self.limited_category, window.start, window.end)
        return QuotaStatus(week=window, category=self.limited_category, used=used, cap=self.cap)

    # ---- mutations ----

    def _check_quota(self, target: date, exclude_id: Optional[str] = None) -> None:
        window = week_window(target)
        used = self.repo.count_in_range(
            self.limited_category, window.start, window.end, exclude_id=exclude_id
        )
        if used >= self.cap:
            logger.info(
                "Quota reached for week %s..%s (%s/%s)", window.start, window.end, used, self.cap
            )
            raise QuotaExceededError(window, self.cap, label=self.default_title)

    def _require_title_and_assignee(self, title: Optional[str], assignee: Optional[str]) -> None:
        if not title or not assignee:
            raise ValidationError(
                f"title and assignee required (except {self.limited_category.value})"
            )

    def create(self, data: ChoreCreate) -> ChoreEntity:
        if data.date is None:
            raise ValidationError("date required")

        category = Category(data.category)
        if category == self.limited_category:
            title = self.default_title
            assignee = self.default_assignee
        else:
            self._require_title_and_assignee(data.title, data.assignee)
            title = data.title or ""
            assignee = data.assignee or ""

        entity: ChoreEntity = {
            "id": uuid.uuid4().hex,
            "date": data.date,
            "category": category,
            "title": title,
            "assignee": assignee,
            "done": False,
            "created_at": self._now(),
        }

        with self.repo.atomic():
            if category == self.limited_category:
                self._check_quota(data.date)
            stored = self.repo.insert(entity)
        logger.debug("Chore created id=%s date=%s category=%s", stored["id"], stored["date"], category.value)
        return stored

    def update(self, chore_id: str, data: ChoreUpdate) -> ChoreEntity:
        fields: Dict[str, Any] = data.provided()
        for key in _NON_NULLABLE:
            if key in fields and fields[key] is None:
                raise ValidationError(f"{key} cannot be null")
        if "assignee" in fields and fields["assignee"] is None:
            fields["assignee"] = ""

        with self.repo.atomic():
            current = self.repo.get(chore_id)
            if current is None:
                raise NotFoundError(chore_id)
            if not fields:
                return current

            merged = {**current, **fields}
            merged_category = Category(merged["category"])

            if merged_category == self.limited_category:
                if merged["assignee"] != self.default_assignee:
                    fields["assignee"] = self.default_assignee
                if not merged["title"]:
                    fields["title"] = self.default_title
                # Only a change of week membership can push the count over the cap
                joins_week = (
                    Category(current["category"]) != self.limited_category
                    or week_window(merged["date"]) != week_window(current["date"])
                )
                if joins_week:
                    self._check_quota(merged["date"], exclude_id=chore_id)
            else:
                self._require_title_and_assignee(merged["title"], merged["assignee"])

            updated = self.repo.update_by_id(chore_id, fields)
            if updated is None:
                raise NotFoundError(chore_id)
        logger.debug("Chore updated id=%s fields=%s", chore_id, sorted(fields))
        return updated

    def delete(self, chore_id: str) -> None:
        if not self.repo.delete_by_id(chore_id):
            raise NotFoundError(chore_id)
        logger.debug("Chore deleted id=%s", chore_id)
