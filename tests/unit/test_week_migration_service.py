"""Tests for WeekMigrationService."""
import pytest

from tests.fakes import FakeDatabase, insert_goal, insert_state


async def seed_week_five(db):
    """
    Seed week 5 of Q1 2025 under one starred quarterly goal.

    - "Write docs": open, daily goals "Outline" (open) and "Draft" (done)
    - "Fix bugs": open, both daily goals done
    - "Plan launch": open, no daily goals
    - "Book venue": done, no daily goals
    """
    quarterly = await insert_goal(db, "user123", "Ship v2", 2025, 1)
    await insert_state(db, "user123", quarterly, 5, is_starred=True)

    docs = await insert_goal(db, "user123", "Write docs", 2025, 1, depth=1, parent=quarterly)
    await insert_state(db, "user123", docs, 5)
    outline = await insert_goal(db, "user123", "Outline", 2025, 1, depth=2, parent=docs)
    await insert_state(db, "user123", outline, 5, daily={"day_of_week": 2})
    draft = await insert_goal(
        db, "user123", "Draft", 2025, 1, depth=2, parent=docs, is_complete=True
    )
    await insert_state(db, "user123", draft, 5, daily={"day_of_week": 3})

    bugs = await insert_goal(db, "user123", "Fix bugs", 2025, 1, depth=1, parent=quarterly)
    await insert_state(db, "user123", bugs, 5)
    for title in ("Triage", "Patch"):
        done = await insert_goal(
            db, "user123", title, 2025, 1, depth=2, parent=bugs, is_complete=True
        )
        await insert_state(db, "user123", done, 5, daily={"day_of_week": 1})

    plan = await insert_goal(db, "user123", "Plan launch", 2025, 1, depth=1, parent=quarterly)
    await insert_state(db, "user123", plan, 5)
    venue = await insert_goal(
        db, "user123", "Book venue", 2025, 1, depth=1, parent=quarterly, is_complete=True
    )
    await insert_state(db, "user123", venue, 5)

    return {
        "quarterly": quarterly,
        "docs": docs,
        "outline": outline,
        "bugs": bugs,
        "plan": plan,
        "venue": venue,
    }


def week(number: int, quarter: int = 1, day: int = None):
    from app.models.migration import WeekPeriod

    return WeekPeriod(year=2025, quarter=quarter, week_number=number, day_of_week=day)


def count_docs(db) -> dict:
    return {name: len(collection.docs) for name, collection in db.collections.items()}


def states_in_week(db, week_number: int) -> list[dict]:
    return [doc for doc in db["goal_state_by_week"].docs if doc["week_number"] == week_number]


def copies_of(db, goal: dict) -> list[dict]:
    return [
        doc for doc in db["goals"].docs
        if doc.get("carry_over", {}).get("from_goal", {}).get("previous_goal_id") == str(goal["_id"])
    ]


@pytest.mark.asyncio
class TestPreviewOrCommitWeekMigration:
    """Tests for preview_or_commit_week_migration."""

    async def test_dry_run_plans_without_writing(self):
        """Test a dry run reports the plan and leaves the database untouched."""
        from app.services.week_migration_service import WeekMigrationService

        db = FakeDatabase()
        seeded = await seed_week_five(db)
        service = WeekMigrationService(db)
        before = count_docs(db)

        result = await service.preview_or_commit_week_migration(
            user_id="user123", source=week(5), destination=week(6), dry_run=True
        )

        assert result.dry_run is True
        assert result.can_pull is True
        assert {g.title for g in result.weekly_goals_to_copy} == {"Write docs", "Plan launch"}
        assert [d.title for d in result.daily_goals_to_move] == ["Outline"]
        assert result.daily_goals_to_move[0].quarterly_goal_title == "Ship v2"
        assert [(q.id, q.is_starred) for q in result.quarterly_goals_to_update] == [
            (str(seeded["quarterly"]["_id"]), True)
        ]
        assert result.weekly_goals_copied == 0
        assert count_docs(db) == before

    async def test_weekly_goal_with_all_daily_goals_done_is_skipped(self):
        """Test a weekly goal whose daily goals are all complete is not copied."""
        from app.services.week_migration_service import WeekMigrationService

        db = FakeDatabase()
        seeded = await seed_week_five(db)
        service = WeekMigrationService(db)

        result = await service.preview_or_commit_week_migration(
            user_id="user123", source=week(5), destination=week(6), dry_run=False
        )

        skipped = {s.title: s.reason for s in result.skipped_goals}
        assert skipped == {"Fix bugs": "no_open_children"}
        assert copies_of(db, seeded["bugs"]) == []
        assert copies_of(db, seeded["venue"]) == []

    async def test_commit_copies_weekly_and_open_daily_goals(self):
        """Test a commit creates carried-over copies with state in the destination week."""
        from app.services.week_migration_service import WeekMigrationService

        db = FakeDatabase()
        seeded = await seed_week_five(db)
        quarterly_id = str(seeded["quarterly"]["_id"])
        service = WeekMigrationService(db)

        result = await service.preview_or_commit_week_migration(
            user_id="user123", source=week(5), destination=week(6, day=1), dry_run=False
        )

        assert result.weekly_goals_copied == 2
        assert result.daily_goals_moved == 1
        assert result.quarterly_goals_updated == 1

        [docs_copy] = copies_of(db, seeded["docs"])
        assert docs_copy["parent_id"] == quarterly_id
        assert docs_copy["in_path"] == f"/{quarterly_id}"
        assert docs_copy["carry_over"]["num_weeks"] == 1
        assert docs_copy["carry_over"]["from_goal"]["root_goal_id"] == str(seeded["docs"]["_id"])

        [outline_copy] = copies_of(db, seeded["outline"])
        assert outline_copy["parent_id"] == str(docs_copy["_id"])
        assert outline_copy["in_path"] == f"/{quarterly_id}/{docs_copy['_id']}"

        week_six = {doc["goal_id"]: doc for doc in states_in_week(db, 6)}
        assert str(docs_copy["_id"]) in week_six
        assert week_six[str(outline_copy["_id"])]["daily"] == {"day_of_week": 1}
        assert week_six[quarterly_id]["is_starred"] is True

        # Source goals are left as they were
        [outline] = [doc for doc in db["goals"].docs if doc["_id"] == seeded["outline"]["_id"]]
        assert outline["parent_id"] == str(seeded["docs"]["_id"])
        assert len(states_in_week(db, 5)) == 9

    async def test_daily_goals_keep_their_day_without_destination_day(self):
        """Test copied daily goals keep the source day when no day is given."""
        from app.services.week_migration_service import WeekMigrationService

        db = FakeDatabase()
        seeded = await seed_week_five(db)
        service = WeekMigrationService(db)

        await service.preview_or_commit_week_migration(
            user_id="user123", source=week(5), destination=week(6), dry_run=False
        )

        [outline_copy] = copies_of(db, seeded["outline"])
        [state] = [
            doc for doc in states_in_week(db, 6) if doc["goal_id"] == str(outline_copy["_id"])
        ]
        assert state["daily"] == {"day_of_week": 2}

    async def test_retry_reuses_existing_copies(self):
        """Test committing twice does not copy anything the second time."""
        from app.services.week_migration_service import WeekMigrationService

        db = FakeDatabase()
        await seed_week_five(db)
        service = WeekMigrationService(db)

        await service.preview_or_commit_week_migration(
            user_id="user123", source=week(5), destination=week(6), dry_run=False
        )
        after_first = count_docs(db)

        result = await service.preview_or_commit_week_migration(
            user_id="user123", source=week(5), destination=week(6), dry_run=False
        )

        assert result.weekly_goals_copied == 0
        assert result.weekly_goals_reused == 2
        assert result.daily_goals_moved == 0
        assert result.weekly_goals_to_copy == []
        assert {s.title for s in result.skipped_goals if s.reason == "already_moved"} == {
            "Write docs",
            "Plan launch",
        }
        assert count_docs(db) == after_first

    async def test_retry_fills_in_missing_daily_goal(self):
        """Test a retry after a partial move only creates the missing daily goal."""
        from app.services.week_migration_service import WeekMigrationService

        db = FakeDatabase()
        seeded = await seed_week_five(db)
        service = WeekMigrationService(db)

        await service.preview_or_commit_week_migration(
            user_id="user123", source=week(5), destination=week(6), dry_run=False
        )
        [outline_copy] = copies_of(db, seeded["outline"])
        await db["goals"].delete_one({"_id": outline_copy["_id"]})
        await db["goal_state_by_week"].delete_one({"goal_id": str(outline_copy["_id"])})

        preview = await service.preview_or_commit_week_migration(
            user_id="user123", source=week(5), destination=week(6), dry_run=True
        )
        assert [d.title for d in preview.daily_goals_to_move] == ["Outline"]

        result = await service.preview_or_commit_week_migration(
            user_id="user123", source=week(5), destination=week(6), dry_run=False
        )

        assert result.weekly_goals_copied == 0
        assert result.daily_goals_moved == 1
        [docs_copy] = copies_of(db, seeded["docs"])
        [new_outline_copy] = copies_of(db, seeded["outline"])
        assert new_outline_copy["parent_id"] == str(docs_copy["_id"])

    async def test_existing_star_wins_over_pin(self):
        """Test a star already set in the destination week is kept over a copied pin."""
        from app.services.week_migration_service import WeekMigrationService

        db = FakeDatabase()
        quarterly = await insert_goal(db, "user123", "Ship v2", 2025, 1)
        await insert_state(db, "user123", quarterly, 5, is_pinned=True)
        await insert_state(db, "user123", quarterly, 6, is_starred=True)
        weekly = await insert_goal(db, "user123", "Plan", 2025, 1, depth=1, parent=quarterly)
        await insert_state(db, "user123", weekly, 5)
        service = WeekMigrationService(db)

        await service.preview_or_commit_week_migration(
            user_id="user123", source=week(5), destination=week(6), dry_run=False
        )

        rows = [
            doc for doc in states_in_week(db, 6) if doc["goal_id"] == str(quarterly["_id"])
        ]
        assert len(rows) == 1
        assert rows[0]["is_starred"] is True
        assert rows[0]["is_pinned"] is False

    async def test_flags_not_copied_without_open_weekly_goals(self):
        """Test a starred quarterly goal with no open weekly goal keeps its star behind."""
        from app.services.week_migration_service import WeekMigrationService

        db = FakeDatabase()
        quarterly = await insert_goal(db, "user123", "Ship v2", 2025, 1)
        await insert_state(db, "user123", quarterly, 5, is_starred=True)
        weekly = await insert_goal(
            db, "user123", "Plan", 2025, 1, depth=1, parent=quarterly, is_complete=True
        )
        await insert_state(db, "user123", weekly, 5)
        service = WeekMigrationService(db)

        result = await service.preview_or_commit_week_migration(
            user_id="user123", source=week(5), destination=week(6), dry_run=True
        )

        assert result.quarterly_goals_to_update == []
        assert result.weekly_goals_to_copy == []

    async def test_into_next_quarter_uses_carried_over_parent(self):
        """Test weekly goals land under the destination quarter's copy of their parent."""
        from app.services.week_migration_service import WeekMigrationService

        db = FakeDatabase()
        quarterly = await insert_goal(db, "user123", "Ship v2", 2025, 1)
        next_quarterly = await insert_goal(
            db,
            "user123",
            "Ship v2",
            2025,
            2,
            carry_over={
                "type": "week",
                "num_weeks": 1,
                "from_goal": {
                    "previous_goal_id": str(quarterly["_id"]),
                    "root_goal_id": str(quarterly["_id"]),
                },
            },
        )
        weekly = await insert_goal(db, "user123", "Plan", 2025, 1, depth=1, parent=quarterly)
        await insert_state(db, "user123", weekly, 13)
        stranded = await insert_goal(db, "user123", "Hire", 2025, 1)
        orphan = await insert_goal(db, "user123", "Interview", 2025, 1, depth=1, parent=stranded)
        await insert_state(db, "user123", orphan, 13)
        service = WeekMigrationService(db)

        result = await service.preview_or_commit_week_migration(
            user_id="user123", source=week(13), destination=week(14, quarter=2), dry_run=False
        )

        [copy] = copies_of(db, weekly)
        assert copy["parent_id"] == str(next_quarterly["_id"])
        assert (copy["year"], copy["quarter"]) == (2025, 2)
        assert copies_of(db, orphan) == []
        assert [(s.title, s.reason) for s in result.skipped_goals] == [
            ("Interview", "not_in_destination_quarter")
        ]

    async def test_same_week_is_rejected(self):
        """Test moving a week onto itself is an invalid argument."""
        from app.errors import InvalidArgumentError
        from app.services.week_migration_service import WeekMigrationService

        service = WeekMigrationService(FakeDatabase())

        with pytest.raises(InvalidArgumentError, match="same week"):
            await service.preview_or_commit_week_migration(
                user_id="user123", source=week(5), destination=week(5)
            )

    async def test_week_outside_quarter_is_rejected(self):
        """Test a week number that is not part of the quarter is an invalid argument."""
        from app.errors import InvalidArgumentError
        from app.services.week_migration_service import WeekMigrationService

        service = WeekMigrationService(FakeDatabase())

        with pytest.raises(InvalidArgumentError, match="not part of Q1 2025"):
            await service.preview_or_commit_week_migration(
                user_id="user123", source=week(5), destination=week(20)
            )

    async def test_other_users_week_is_not_read(self):
        """Test goals of another user are never part of the plan."""
        from app.services.week_migration_service import WeekMigrationService

        db = FakeDatabase()
        await seed_week_five(db)
        service = WeekMigrationService(db)

        result = await service.preview_or_commit_week_migration(
            user_id="someone-else", source=week(5), destination=week(6)
        )

        assert result.weekly_goals_to_copy == []
        assert result.skipped_goals == []


@pytest.mark.asyncio
class TestLastNonEmptyWeek:
    """Tests for find_last_non_empty_week and move_from_last_non_empty_week."""

    async def test_skips_weeks_with_nothing_open(self):
        """Test weeks holding only finished work are passed over."""
        from app.services.week_migration_service import WeekMigrationService

        db = FakeDatabase()
        await seed_week_five(db)
        quarterly = await insert_goal(db, "user123", "Hire", 2025, 1)
        done = await insert_goal(
            db, "user123", "Post job", 2025, 1, depth=1, parent=quarterly, is_complete=True
        )
        await insert_state(db, "user123", done, 7)
        service = WeekMigrationService(db)

        found = await service.find_last_non_empty_week("user123", week(8))

        assert found == week(5)

    async def test_search_crosses_into_previous_quarter(self):
        """Test the first week of a quarter finds open work in the previous quarter."""
        from app.services.week_migration_service import WeekMigrationService

        db = FakeDatabase()
        quarterly = await insert_goal(db, "user123", "Ship v2", 2025, 1)
        weekly = await insert_goal(db, "user123", "Plan", 2025, 1, depth=1, parent=quarterly)
        await insert_state(db, "user123", weekly, 12)
        service = WeekMigrationService(db)

        found = await service.find_last_non_empty_week("user123", week(14, quarter=2))

        assert found == week(12)

    async def test_nothing_to_pull(self):
        """Test an empty history reports that nothing can be pulled."""
        from app.services.week_migration_service import WeekMigrationService

        service = WeekMigrationService(FakeDatabase())

        result = await service.move_from_last_non_empty_week("user123", week(8), dry_run=True)

        assert result.can_pull is False
        assert result.source is None
        assert result.weekly_goals_to_copy == []

    async def test_commit_from_last_non_empty_week(self):
        """Test pulling from the last non-empty week copies its open goals."""
        from app.services.week_migration_service import WeekMigrationService

        db = FakeDatabase()
        seeded = await seed_week_five(db)
        service = WeekMigrationService(db)

        result = await service.move_from_last_non_empty_week("user123", week(8), dry_run=False)

        assert result.source == week(5)
        assert result.weekly_goals_copied == 2
        [copy] = copies_of(db, seeded["plan"])
        assert any(doc["goal_id"] == str(copy["_id"]) for doc in states_in_week(db, 8))


async def seed_tuesday(db):
    """Seed week 5 with daily goals on Tuesday (one open, one done) and Thursday."""
    quarterly = await insert_goal(db, "user123", "Ship v2", 2025, 1)
    weekly = await insert_goal(db, "user123", "Write docs", 2025, 1, depth=1, parent=quarterly)
    await insert_state(db, "user123", weekly, 5)
    open_goal = await insert_goal(db, "user123", "Outline", 2025, 1, depth=2, parent=weekly)
    await insert_state(db, "user123", open_goal, 5, daily={"day_of_week": 2})
    done_goal = await insert_goal(
        db, "user123", "Draft", 2025, 1, depth=2, parent=weekly, is_complete=True
    )
    await insert_state(db, "user123", done_goal, 5, daily={"day_of_week": 2})
    other_day = await insert_goal(db, "user123", "Review", 2025, 1, depth=2, parent=weekly)
    await insert_state(db, "user123", other_day, 5, daily={"day_of_week": 4})
    return weekly, open_goal, done_goal, other_day


def state_of(db, goal: dict) -> list[dict]:
    return [doc for doc in db["goal_state_by_week"].docs if doc["goal_id"] == str(goal["_id"])]


@pytest.mark.asyncio
class TestMoveGoalsFromDay:
    """Tests for move_goals_from_day."""

    async def test_dry_run_lists_open_goals_of_the_day(self):
        """Test a dry run lists only the open daily goals of the source day."""
        from app.services.week_migration_service import WeekMigrationService

        db = FakeDatabase()
        weekly, open_goal, _, _ = await seed_tuesday(db)
        service = WeekMigrationService(db)
        before = count_docs(db)

        result = await service.move_goals_from_day(
            "user123", week(5, day=2), week(5, day=3), dry_run=True
        )

        assert [g.id for g in result.goals_to_move] == [str(open_goal["_id"])]
        assert result.goals_to_move[0].weekly_goal_title == "Write docs"
        assert result.goals_to_move[0].quarterly_goal_title == "Ship v2"
        assert result.goals_moved == 0
        assert count_docs(db) == before

    async def test_move_within_the_week(self):
        """Test moving to another day of the same week only changes the day."""
        from app.services.week_migration_service import WeekMigrationService

        db = FakeDatabase()
        _, open_goal, done_goal, other_day = await seed_tuesday(db)
        service = WeekMigrationService(db)

        result = await service.move_goals_from_day(
            "user123", week(5, day=2), week(5, day=3), dry_run=False
        )

        assert result.goals_moved == 1
        [state] = state_of(db, open_goal)
        assert (state["week_number"], state["daily"]["day_of_week"]) == (5, 3)
        assert state_of(db, done_goal)[0]["daily"]["day_of_week"] == 2
        assert state_of(db, other_day)[0]["daily"]["day_of_week"] == 4

    async def test_completed_goals_move_when_asked(self):
        """Test move_only_incomplete=False also moves completed goals."""
        from app.services.week_migration_service import WeekMigrationService

        db = FakeDatabase()
        _, _, done_goal, _ = await seed_tuesday(db)
        service = WeekMigrationService(db)

        result = await service.move_goals_from_day(
            "user123", week(5, day=2), week(5, day=5), dry_run=False, move_only_incomplete=False
        )

        assert result.goals_moved == 2
        assert state_of(db, done_goal)[0]["daily"]["day_of_week"] == 5

    async def test_move_to_another_week(self):
        """Test moving to a later week moves the state row and gives the parent a row there."""
        from app.services.week_migration_service import WeekMigrationService

        db = FakeDatabase()
        weekly, open_goal, _, _ = await seed_tuesday(db)
        service = WeekMigrationService(db)

        await service.move_goals_from_day(
            "user123", week(5, day=2), week(6, day=1), dry_run=False
        )

        [state] = state_of(db, open_goal)
        assert (state["week_number"], state["daily"]["day_of_week"]) == (6, 1)
        assert sorted(doc["week_number"] for doc in state_of(db, weekly)) == [5, 6]

    async def test_other_quarter_is_rejected(self):
        """Test daily goals cannot move into another quarter."""
        from app.errors import InvalidArgumentError
        from app.services.week_migration_service import WeekMigrationService

        service = WeekMigrationService(FakeDatabase())

        with pytest.raises(InvalidArgumentError, match="within their quarter"):
            await service.move_goals_from_day(
                "user123", week(13, day=5), week(14, quarter=2, day=1)
            )

    async def test_day_is_required(self):
        """Test both periods must name a day."""
        from app.errors import InvalidArgumentError
        from app.services.week_migration_service import WeekMigrationService

        service = WeekMigrationService(FakeDatabase())

        with pytest.raises(InvalidArgumentError, match="day_of_week"):
            await service.move_goals_from_day("user123", week(5), week(6, day=1))
