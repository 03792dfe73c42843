"""Tests for GoalLogService."""
import pytest
from datetime import datetime, timedelta, timezone

from bson import ObjectId

from tests.fakes import FakeDatabase, insert_goal


class TestIsHtmlEmpty:
    """Tests for is_html_empty."""

    @pytest.mark.parametrize("content,expected", [
        ("", True),
        ("   ", True),
        ("<p></p>", True),
        ("<p> <br/> </p>", True),
        ("<p>Shipped the beta</p>", False),
        ("plain text", False),
    ])
    def test_content(self, content, expected):
        """Test markup without text counts as empty."""
        from app.services.goal_log_service import is_html_empty

        assert is_html_empty(content) is expected


@pytest.mark.asyncio
class TestGoalLogService:
    """Tests for GoalLogService."""

    async def test_create_log_records_root_goal(self):
        """Test a log on a carried-over goal stores the chain root."""
        from app.models.goal_log import GoalLogCreate
        from app.services.goal_log_service import GoalLogService

        db = FakeDatabase()
        root_id = str(ObjectId())
        goal = await insert_goal(
            db, "user123", "Learn Rust", 2025, 2,
            carry_over={
                "type": "week",
                "num_weeks": 1,
                "from_goal": {"previous_goal_id": root_id, "root_goal_id": root_id},
            },
        )
        service = GoalLogService(db)

        log = await service.create_log("user123", GoalLogCreate(
            goal_id=str(goal["_id"]),
            log_date=datetime.utcnow(),
            content="<p>Finished chapter 4</p>",
        ))

        assert log.goal_id == str(goal["_id"])
        assert log.root_goal_id == root_id
        assert log.user_id == "user123"

    async def test_create_log_accepts_aware_dates(self):
        """Test timezone-aware dates are stored as naive UTC."""
        from app.models.goal_log import GoalLogCreate
        from app.services.goal_log_service import GoalLogService

        db = FakeDatabase()
        goal = await insert_goal(db, "user123", "Learn Rust", 2025, 2)
        service = GoalLogService(db)

        log = await service.create_log("user123", GoalLogCreate(
            goal_id=str(goal["_id"]),
            log_date=datetime.now(timezone.utc),
            content="Progress",
        ))

        assert log.log_date.tzinfo is None

    async def test_empty_content(self):
        """Test markup-only content is rejected."""
        from app.errors import InvalidArgumentError
        from app.models.goal_log import GoalLogCreate
        from app.services.goal_log_service import GoalLogService

        db = FakeDatabase()
        goal = await insert_goal(db, "user123", "Learn Rust", 2025, 2)
        service = GoalLogService(db)

        with pytest.raises(InvalidArgumentError, match="cannot be empty"):
            await service.create_log("user123", GoalLogCreate(
                goal_id=str(goal["_id"]),
                log_date=datetime.utcnow(),
                content="<p>  </p>",
            ))

    async def test_content_too_long(self):
        """Test oversized content is rejected."""
        from app.config import settings
        from app.errors import InvalidArgumentError
        from app.models.goal_log import GoalLogCreate
        from app.services.goal_log_service import GoalLogService

        db = FakeDatabase()
        goal = await insert_goal(db, "user123", "Learn Rust", 2025, 2)
        service = GoalLogService(db)

        with pytest.raises(InvalidArgumentError, match="maximum length"):
            await service.create_log("user123", GoalLogCreate(
                goal_id=str(goal["_id"]),
                log_date=datetime.utcnow(),
                content="x" * (settings.max_log_content_length + 1),
            ))

    @pytest.mark.parametrize("offset,message", [
        (timedelta(days=-400), "one year in the past"),
        (timedelta(days=3), "in the future"),
    ])
    async def test_log_date_out_of_range(self, offset, message):
        """Test dates too far back or ahead are rejected."""
        from app.errors import InvalidArgumentError
        from app.models.goal_log import GoalLogCreate
        from app.services.goal_log_service import GoalLogService

        db = FakeDatabase()
        goal = await insert_goal(db, "user123", "Learn Rust", 2025, 2)
        service = GoalLogService(db)

        with pytest.raises(InvalidArgumentError, match=message):
            await service.create_log("user123", GoalLogCreate(
                goal_id=str(goal["_id"]),
                log_date=datetime.utcnow() + offset,
                content="Progress",
            ))

    async def test_log_on_adhoc_goal(self):
        """Test adhoc goals can be logged and are their own chain root."""
        from app.models.adhoc_goal import AdhocGoalCreate
        from app.models.goal_log import GoalLogCreate
        from app.services.adhoc_goal_service import AdhocGoalService
        from app.services.goal_log_service import GoalLogService

        db = FakeDatabase()
        adhoc = await AdhocGoalService(db).create_adhoc_goal("user123", AdhocGoalCreate(
            title="Renew passport", year=2025, week_number=6,
        ))
        service = GoalLogService(db)

        log = await service.create_log("user123", GoalLogCreate(
            goal_id=adhoc.id,
            log_date=datetime.utcnow(),
            content="<p>Booked an appointment</p>",
        ))
        logs = await service.list_logs_for_goal("user123", adhoc.id)

        assert log.root_goal_id == adhoc.id
        assert [entry.id for entry in logs] == [log.id]

    async def test_log_on_other_users_goal(self):
        """Test logging against another user's goal is forbidden."""
        from app.errors import ForbiddenError
        from app.models.goal_log import GoalLogCreate
        from app.services.goal_log_service import GoalLogService

        db = FakeDatabase()
        goal = await insert_goal(db, "someone-else", "Learn Rust", 2025, 2)
        service = GoalLogService(db)

        with pytest.raises(ForbiddenError):
            await service.create_log("user123", GoalLogCreate(
                goal_id=str(goal["_id"]),
                log_date=datetime.utcnow(),
                content="Progress",
            ))

    async def test_list_for_root_spans_instances(self):
        """Test logs of every instance of a chain are listed newest first."""
        from app.models.goal_log import GoalLogCreate
        from app.services.goal_log_service import GoalLogService

        db = FakeDatabase()
        original = await insert_goal(db, "user123", "Learn Rust", 2025, 1)
        original_id = str(original["_id"])
        carried = await insert_goal(
            db, "user123", "Learn Rust", 2025, 2,
            carry_over={
                "type": "week",
                "num_weeks": 1,
                "from_goal": {"previous_goal_id": original_id, "root_goal_id": original_id},
            },
        )
        service = GoalLogService(db)
        now = datetime.utcnow()

        await service.create_log("user123", GoalLogCreate(
            goal_id=original_id, log_date=now - timedelta(days=30), content="Started",
        ))
        await service.create_log("user123", GoalLogCreate(
            goal_id=str(carried["_id"]), log_date=now - timedelta(days=1), content="Continued",
        ))

        by_root = await service.list_logs_for_root_goal("user123", original_id)
        by_goal = await service.list_logs_for_goal("user123", original_id)

        assert [log.content for log in by_root] == ["Continued", "Started"]
        assert [log.content for log in by_goal] == ["Started"]

    async def test_update_and_delete_log(self):
        """Test a log can be edited and then removed."""
        from app.models.goal_log import GoalLogCreate, GoalLogUpdate
        from app.services.goal_log_service import GoalLogService

        db = FakeDatabase()
        goal = await insert_goal(db, "user123", "Learn Rust", 2025, 2)
        service = GoalLogService(db)
        log = await service.create_log("user123", GoalLogCreate(
            goal_id=str(goal["_id"]), log_date=datetime.utcnow(), content="Draft",
        ))

        updated = await service.update_log("user123", log.id, GoalLogUpdate(content="Final"))
        deleted = await service.delete_log("user123", log.id)

        assert updated.content == "Final"
        assert updated.updated_at is not None
        assert deleted == {"deleted_count": 1}
        assert db["goal_logs"].docs == []

    async def test_update_missing_log(self):
        """Test updating an unknown log raises NotFoundError."""
        from app.errors import NotFoundError
        from app.models.goal_log import GoalLogUpdate
        from app.services.goal_log_service import GoalLogService

        service = GoalLogService(FakeDatabase())

        with pytest.raises(NotFoundError, match="Log not found"):
            await service.update_log("user123", str(ObjectId()), GoalLogUpdate(content="Final"))
