"""Tests for AdhocGoalService."""
import pytest
from bson import ObjectId

from tests.fakes import FakeDatabase, insert_goal


@pytest.mark.asyncio
class TestAdhocGoalService:
    """Tests for AdhocGoalService."""

    async def test_create_adhoc_goal(self):
        """Test an adhoc goal is stored outside the hierarchy with its quarter."""
        from app.models.adhoc_goal import AdhocGoalCreate
        from app.models.goal_state import DayOfWeek
        from app.services.adhoc_goal_service import AdhocGoalService

        db = FakeDatabase()
        service = AdhocGoalService(db)

        goal = await service.create_adhoc_goal("user123", AdhocGoalCreate(
            title="  Call plumber  ",
            year=2025,
            week_number=14,
            day_of_week=DayOfWeek.WEDNESDAY,
        ))

        assert goal.title == "Call plumber"
        assert goal.quarter == 2
        assert goal.week_number == 14
        assert goal.day_of_week == DayOfWeek.WEDNESDAY
        stored = db["goals"].docs[0]
        assert stored["depth"] == -1
        assert stored["adhoc"] == {"week_number": 14, "day_of_week": 3}

    async def test_week_53_of_short_year(self):
        """Test week 53 of 2025 does not exist."""
        from app.errors import InvalidArgumentError
        from app.models.adhoc_goal import AdhocGoalCreate
        from app.services.adhoc_goal_service import AdhocGoalService

        service = AdhocGoalService(FakeDatabase())

        with pytest.raises(InvalidArgumentError, match="Week 53"):
            await service.create_adhoc_goal("user123", AdhocGoalCreate(
                title="Call plumber", year=2025, week_number=53,
            ))

    async def test_blank_title(self):
        """Test a blank title is rejected."""
        from app.errors import InvalidArgumentError
        from app.models.adhoc_goal import AdhocGoalCreate
        from app.services.adhoc_goal_service import AdhocGoalService

        service = AdhocGoalService(FakeDatabase())

        with pytest.raises(InvalidArgumentError, match="Title cannot be empty"):
            await service.create_adhoc_goal("user123", AdhocGoalCreate(
                title=" ", year=2025, week_number=2,
            ))

    async def test_list_for_week(self):
        """Test only the user's adhoc goals of the week are listed."""
        from app.models.adhoc_goal import AdhocGoalCreate
        from app.services.adhoc_goal_service import AdhocGoalService

        db = FakeDatabase()
        service = AdhocGoalService(db)
        await service.create_adhoc_goal("user123", AdhocGoalCreate(title="A", year=2025, week_number=3))
        await service.create_adhoc_goal("user123", AdhocGoalCreate(title="B", year=2025, week_number=4))
        await service.create_adhoc_goal("user456", AdhocGoalCreate(title="C", year=2025, week_number=3))
        await insert_goal(db, "user123", "Quarterly", 2025, 1)

        goals = await service.list_adhoc_goals_for_week("user123", 2025, 3)

        assert [g.title for g in goals] == ["A"]

    async def test_complete_and_reopen(self):
        """Test completing stamps completed_at and reopening clears it."""
        from app.models.adhoc_goal import AdhocGoalCreate, AdhocGoalUpdate
        from app.services.adhoc_goal_service import AdhocGoalService

        db = FakeDatabase()
        service = AdhocGoalService(db)
        goal = await service.create_adhoc_goal(
            "user123", AdhocGoalCreate(title="A", year=2025, week_number=3)
        )

        completed = await service.update_adhoc_goal("user123", goal.id, AdhocGoalUpdate(is_complete=True))
        reopened = await service.update_adhoc_goal("user123", goal.id, AdhocGoalUpdate(is_complete=False))

        assert completed.is_complete is True
        assert completed.completed_at is not None
        assert reopened.is_complete is False
        assert reopened.completed_at is None

    async def test_changing_week_recomputes_quarter(self):
        """Test moving to another week updates the quarter."""
        from app.models.adhoc_goal import AdhocGoalCreate, AdhocGoalUpdate
        from app.services.adhoc_goal_service import AdhocGoalService

        db = FakeDatabase()
        service = AdhocGoalService(db)
        goal = await service.create_adhoc_goal(
            "user123", AdhocGoalCreate(title="A", year=2025, week_number=3)
        )

        updated = await service.update_adhoc_goal("user123", goal.id, AdhocGoalUpdate(week_number=40))

        assert updated.week_number == 40
        assert updated.quarter == 4

    async def test_hierarchical_goal_is_not_adhoc(self):
        """Test a quarterly goal cannot be read through the adhoc service."""
        from app.errors import NotFoundError
        from app.services.adhoc_goal_service import AdhocGoalService

        db = FakeDatabase()
        goal = await insert_goal(db, "user123", "Quarterly", 2025, 1)
        service = AdhocGoalService(db)

        with pytest.raises(NotFoundError, match="Adhoc goal not found"):
            await service.get_adhoc_goal("user123", str(goal["_id"]))

    async def test_delete_adhoc_goal(self):
        """Test deleting an adhoc goal removes it."""
        from app.errors import NotFoundError
        from app.models.adhoc_goal import AdhocGoalCreate
        from app.services.adhoc_goal_service import AdhocGoalService

        db = FakeDatabase()
        service = AdhocGoalService(db)
        goal = await service.create_adhoc_goal(
            "user123", AdhocGoalCreate(title="A", year=2025, week_number=3)
        )

        result = await service.delete_adhoc_goal("user123", goal.id)

        assert result == {"deleted_count": 1}
        with pytest.raises(NotFoundError):
            await service.get_adhoc_goal("user123", goal.id)

    async def test_other_users_goal(self):
        """Test reading another user's adhoc goal is forbidden."""
        from app.errors import ForbiddenError
        from app.models.adhoc_goal import AdhocGoalCreate
        from app.services.adhoc_goal_service import AdhocGoalService

        db = FakeDatabase()
        service = AdhocGoalService(db)
        goal = await service.create_adhoc_goal(
            "user456", AdhocGoalCreate(title="A", year=2025, week_number=3)
        )

        with pytest.raises(ForbiddenError):
            await service.get_adhoc_goal("user123", goal.id)

    async def test_invalid_id(self):
        """Test a malformed id raises InvalidArgumentError."""
        from app.errors import InvalidArgumentError
        from app.services.adhoc_goal_service import AdhocGoalService

        service = AdhocGoalService(FakeDatabase())

        with pytest.raises(InvalidArgumentError):
            await service.get_adhoc_goal("user123", "not-an-id")

    async def test_missing_goal(self):
        """Test an unknown id raises NotFoundError."""
        from app.errors import NotFoundError
        from app.services.adhoc_goal_service import AdhocGoalService

        service = AdhocGoalService(FakeDatabase())

        with pytest.raises(NotFoundError):
            await service.get_adhoc_goal("user123", str(ObjectId()))


@pytest.mark.asyncio
class TestMoveIncompleteFromWeek:
    """Tests for AdhocGoalService.move_incomplete_from_week."""

    async def seed(self, service):
        from app.models.adhoc_goal import AdhocGoalCreate, AdhocGoalUpdate

        open_goal = await service.create_adhoc_goal("user123", AdhocGoalCreate(
            title="Call plumber", year=2025, week_number=13, day_of_week=3,
        ))
        done_goal = await service.create_adhoc_goal("user123", AdhocGoalCreate(
            title="Renew passport", year=2025, week_number=13,
        ))
        await service.update_adhoc_goal(
            "user123", done_goal.id, AdhocGoalUpdate(is_complete=True)
        )
        return open_goal, done_goal

    async def test_dry_run_lists_open_goals(self):
        """Test a dry run lists only the open goals and writes nothing."""
        from app.models.adhoc_goal import AdhocWeek
        from app.services.adhoc_goal_service import AdhocGoalService

        db = FakeDatabase()
        service = AdhocGoalService(db)
        open_goal, _ = await self.seed(service)

        result = await service.move_incomplete_from_week(
            "user123", AdhocWeek(year=2025, week_number=13), AdhocWeek(year=2025, week_number=14)
        )

        assert result.can_move is True
        assert [g.id for g in result.goals] == [open_goal.id]
        assert result.goals_moved == 0
        assert (await service.get_adhoc_goal("user123", open_goal.id)).week_number == 13

    async def test_commit_moves_open_goals_into_next_quarter(self):
        """Test open goals take the new week and quarter; completed goals stay."""
        from app.models.adhoc_goal import AdhocWeek
        from app.services.adhoc_goal_service import AdhocGoalService

        db = FakeDatabase()
        service = AdhocGoalService(db)
        open_goal, done_goal = await self.seed(service)

        result = await service.move_incomplete_from_week(
            "user123",
            AdhocWeek(year=2025, week_number=13),
            AdhocWeek(year=2025, week_number=14),
            dry_run=False,
        )

        assert result.goals_moved == 1
        moved = await service.get_adhoc_goal("user123", open_goal.id)
        assert (moved.week_number, moved.quarter) == (14, 2)
        assert moved.day_of_week == 3
        assert (await service.get_adhoc_goal("user123", done_goal.id)).week_number == 13

    async def test_nothing_to_move(self):
        """Test an empty week reports that nothing can be moved."""
        from app.models.adhoc_goal import AdhocWeek
        from app.services.adhoc_goal_service import AdhocGoalService

        service = AdhocGoalService(FakeDatabase())

        result = await service.move_incomplete_from_week(
            "user123",
            AdhocWeek(year=2025, week_number=20),
            AdhocWeek(year=2025, week_number=21),
            dry_run=False,
        )

        assert result.can_move is False
        assert result.goals_moved == 0

    async def test_same_week(self):
        """Test moving a week onto itself is an invalid argument."""
        from app.errors import InvalidArgumentError
        from app.models.adhoc_goal import AdhocWeek
        from app.services.adhoc_goal_service import AdhocGoalService

        service = AdhocGoalService(FakeDatabase())

        with pytest.raises(InvalidArgumentError, match="same week"):
            await service.move_incomplete_from_week(
                "user123", AdhocWeek(year=2025, week_number=13), AdhocWeek(year=2025, week_number=13)
            )
