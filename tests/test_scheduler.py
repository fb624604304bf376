import threading
from datetime import date

import pytest

from chore_calendar.errors import NotFoundError, QuotaExceededError, ValidationError
from chore_calendar.models import Category
from chore_calendar.scheduler import QuotaScheduler
from chore_calendar.schemas import ChoreCreate, ChoreUpdate
from chore_calendar.settings import Settings

# 2025-02-03 is a Monday; 2025-02-09 the Sunday closing its week
MONDAY = date(2025, 2, 3)
WEDNESDAY = date(2025, 2, 5)
SUNDAY = date(2025, 2, 9)
NEXT_MONDAY = date(2025, 2, 10)


@pytest.fixture()
def scheduler(chore_repo) -> QuotaScheduler:
    return QuotaScheduler(chore_repo, cap=2)


def make_own(d: date) -> ChoreCreate:
    return ChoreCreate(date=d, category=Category.NO_DINNER)


def dinner(d: date, title: str = "Tacos", assignee: str = "Adam") -> ChoreCreate:
    return ChoreCreate(date=d, category=Category.DINNER, title=title, assignee=assignee)


def limited_in_week(scheduler: QuotaScheduler, d: date) -> int:
    return sum(1 for c in scheduler.list_week(d) if c["category"] == Category.NO_DINNER)


class TestCreate:
    def test_regular_chore_is_stored(self, scheduler):
        created = scheduler.create(dinner(MONDAY))
        assert created["id"]
        assert created["done"] is False
        assert created["title"] == "Tacos"
        assert created["assignee"] == "Adam"
        assert scheduler.list() == [created]

    @pytest.mark.parametrize("title,assignee", [(None, "Adam"), ("Tacos", None), ("", "Adam"), ("Tacos", "  ")])
    def test_regular_chore_requires_title_and_assignee(self, scheduler, title, assignee):
        with pytest.raises(ValidationError):
            scheduler.create(ChoreCreate(date=MONDAY, category=Category.OTHER, title=title, assignee=assignee))
        assert scheduler.list() == []

    def test_limited_chore_forces_title_and_clears_assignee(self, scheduler):
        created = scheduler.create(
            ChoreCreate(date=MONDAY, category=Category.NO_DINNER, title="Pizza", assignee="Mike")
        )
        assert created["title"] == "Make your own"
        assert created["assignee"] == ""

    def test_cap_reached_within_one_week(self, scheduler):
        scheduler.create(make_own(MONDAY))
        scheduler.create(make_own(SUNDAY))
        with pytest.raises(QuotaExceededError) as info:
            scheduler.create(make_own(WEDNESDAY))
        assert info.value.cap == 2
        assert info.value.week.start == MONDAY
        assert info.value.week.end == SUNDAY
        assert limited_in_week(scheduler, MONDAY) == 2

    def test_next_week_has_its_own_allowance(self, scheduler):
        scheduler.create(make_own(MONDAY))
        scheduler.create(make_own(SUNDAY))
        scheduler.create(make_own(NEXT_MONDAY))
        assert limited_in_week(scheduler, NEXT_MONDAY) == 1

    def test_regular_chores_do_not_count_towards_cap(self, scheduler):
        for _ in range(5):
            scheduler.create(dinner(WEDNESDAY))
        scheduler.create(make_own(WEDNESDAY))
        scheduler.create(make_own(WEDNESDAY))
        assert scheduler.quota_status(WEDNESDAY).remaining == 0

    def test_failed_create_leaves_store_unchanged(self, scheduler):
        scheduler.create(make_own(MONDAY))
        scheduler.create(make_own(MONDAY))
        before = scheduler.list()
        with pytest.raises(QuotaExceededError):
            scheduler.create(make_own(MONDAY))
        assert scheduler.list() == before

    def test_zero_cap_blocks_every_limited_chore(self, chore_repo):
        scheduler = QuotaScheduler(chore_repo, cap=0)
        with pytest.raises(QuotaExceededError):
            scheduler.create(make_own(MONDAY))
        scheduler.create(dinner(MONDAY))

    def test_concurrent_creates_never_exceed_cap(self, scheduler):
        workers = 8
        barrier = threading.Barrier(workers)
        outcomes = []
        lock = threading.Lock()

        def attempt():
            barrier.wait()
            try:
                scheduler.create(make_own(WEDNESDAY))
                result = "ok"
            except QuotaExceededError:
                result = "quota"
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=attempt) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 2
        assert outcomes.count("quota") == workers - 2
        assert limited_in_week(scheduler, WEDNESDAY) == 2


class TestUpdate:
    def test_done_only_update_skips_quota(self, scheduler):
        first = scheduler.create(make_own(MONDAY))
        scheduler.create(make_own(MONDAY))
        updated = scheduler.update(first["id"], ChoreUpdate(done=True))
        assert updated["done"] is True
        assert updated["date"] == MONDAY

    def test_partial_update_keeps_other_fields(self, scheduler):
        created = scheduler.create(dinner(MONDAY, title="Soup", assignee="Mike"))
        updated = scheduler.update(created["id"], ChoreUpdate(title="Stew"))
        assert updated["title"] == "Stew"
        assert updated["assignee"] == "Mike"
        assert updated["category"] == Category.DINNER
        assert updated["created_at"] == created["created_at"]

    def test_empty_update_returns_current(self, scheduler):
        created = scheduler.create(dinner(MONDAY))
        assert scheduler.update(created["id"], ChoreUpdate()) == created

    def test_move_within_same_week_never_self_blocks(self, scheduler):
        first = scheduler.create(make_own(MONDAY))
        scheduler.create(make_own(MONDAY))
        moved = scheduler.update(first["id"], ChoreUpdate(date=SUNDAY))
        assert moved["date"] == SUNDAY
        same = scheduler.update(first["id"], ChoreUpdate(date=SUNDAY))
        assert same["date"] == SUNDAY

    def test_move_into_full_week_is_rejected(self, scheduler):
        scheduler.create(make_own(MONDAY))
        scheduler.create(make_own(SUNDAY))
        mover = scheduler.create(make_own(NEXT_MONDAY))
        with pytest.raises(QuotaExceededError):
            scheduler.update(mover["id"], ChoreUpdate(date=WEDNESDAY))
        assert scheduler.get(mover["id"])["date"] == NEXT_MONDAY
        assert limited_in_week(scheduler, MONDAY) == 2

    def test_move_into_week_with_room_succeeds(self, scheduler):
        scheduler.create(make_own(MONDAY))
        mover = scheduler.create(make_own(NEXT_MONDAY))
        moved = scheduler.update(mover["id"], ChoreUpdate(date=WEDNESDAY))
        assert moved["date"] == WEDNESDAY
        assert limited_in_week(scheduler, MONDAY) == 2

    def test_promotion_into_limited_category_is_checked(self, scheduler):
        scheduler.create(make_own(MONDAY))
        scheduler.create(make_own(MONDAY))
        regular = scheduler.create(dinner(WEDNESDAY))
        with pytest.raises(QuotaExceededError):
            scheduler.update(regular["id"], ChoreUpdate(category=Category.NO_DINNER))
        assert scheduler.get(regular["id"])["category"] == Category.DINNER

    def test_promotion_clears_assignee(self, scheduler):
        regular = scheduler.create(dinner(WEDNESDAY, assignee="Mike"))
        promoted = scheduler.update(regular["id"], ChoreUpdate(category=Category.NO_DINNER))
        assert promoted["category"] == Category.NO_DINNER
        assert promoted["assignee"] == ""

    def test_demotion_requires_assignee(self, scheduler):
        limited = scheduler.create(make_own(MONDAY))
        with pytest.raises(ValidationError):
            scheduler.update(limited["id"], ChoreUpdate(category=Category.DINNER))
        demoted = scheduler.update(
            limited["id"], ChoreUpdate(category=Category.DINNER, title="Pasta", assignee="Adam")
        )
        assert demoted["assignee"] == "Adam"
        assert scheduler.quota_status(MONDAY).used == 0

    def test_null_date_is_rejected(self, scheduler):
        created = scheduler.create(dinner(MONDAY))
        with pytest.raises(ValidationError):
            scheduler.update(created["id"], ChoreUpdate(date=None))

    def test_unknown_id(self, scheduler):
        with pytest.raises(NotFoundError):
            scheduler.update("missing", ChoreUpdate(done=True))


class TestDeleteAndList:
    def test_delete_frees_allowance(self, scheduler):
        first = scheduler.create(make_own(MONDAY))
        scheduler.create(make_own(MONDAY))
        scheduler.delete(first["id"])
        scheduler.create(make_own(SUNDAY))
        assert limited_in_week(scheduler, MONDAY) == 2

    def test_delete_unknown_id(self, scheduler):
        with pytest.raises(NotFoundError):
            scheduler.delete("missing")

    def test_range_filter_is_inclusive(self, scheduler):
        scheduler.create(dinner(date(2025, 2, 2)))
        inside = [scheduler.create(dinner(MONDAY)), scheduler.create(dinner(SUNDAY))]
        scheduler.create(dinner(NEXT_MONDAY))
        assert [c["id"] for c in scheduler.list(MONDAY, SUNDAY)] == [c["id"] for c in inside]

    def test_range_needs_both_bounds_in_order(self, scheduler):
        with pytest.raises(ValidationError):
            scheduler.list(MONDAY, None)
        with pytest.raises(ValidationError):
            scheduler.list(SUNDAY, MONDAY)

    def test_same_day_ordered_by_category_then_insertion(self, scheduler):
        other_a = scheduler.create(ChoreCreate(date=MONDAY, category=Category.OTHER, title="Dishes", assignee="Mike"))
        limited = scheduler.create(make_own(MONDAY))
        dinner_a = scheduler.create(dinner(MONDAY, title="First"))
        other_b = scheduler.create(ChoreCreate(date=MONDAY, category=Category.OTHER, title="Trash", assignee="Adam"))
        dinner_b = scheduler.create(dinner(MONDAY, title="Second"))
        earlier = scheduler.create(dinner(date(2025, 2, 1)))

        ids = [c["id"] for c in scheduler.list()]
        assert ids == [
            earlier["id"],
            dinner_a["id"],
            dinner_b["id"],
            other_a["id"],
            other_b["id"],
            limited["id"],
        ]

    def test_quota_status(self, scheduler):
        scheduler.create(make_own(WEDNESDAY))
        status = scheduler.quota_status(SUNDAY)
        assert (status.used, status.cap, status.remaining) == (1, 2, 1)
        assert status.week.start == MONDAY


class TestConfiguration:
    def test_from_settings_uses_configured_cap_and_defaults(self, chore_repo):
        settings = Settings(quota_cap=4, quota_title="Leftovers", quota_assignee="nobody")
        scheduler = QuotaScheduler.from_settings(chore_repo, settings)
        for _ in range(4):
            created = scheduler.create(make_own(MONDAY))
        assert created["title"] == "Leftovers"
        assert created["assignee"] == "nobody"
        with pytest.raises(QuotaExceededError) as info:
            scheduler.create(make_own(MONDAY))
        assert info.value.message == "Limit reached: only 4 'Leftovers' days allowed per week."

    def test_negative_cap_is_refused(self, chore_repo):
        with pytest.raises(ValueError):
            QuotaScheduler(chore_repo, cap=-1)
