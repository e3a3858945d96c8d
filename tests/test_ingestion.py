"""Tests for log ingestion: validation, visibility fan-out and post-commit dispatch."""

import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from shiftbook.errors import NotFound, ValidationFailed
from shiftbook.logs.models import LogWorkCenter, ShiftLog
from shiftbook.logs.service import as_utc, batch_create_logs, create_log
from shiftbook.notifications.service import dispatch_notification


def _run_now(fn, *args):
    fn(*args)


class TestCreateLog:
    def test_creates_one_visibility_record_per_work_center(self, db_session, test_category, make_entry):
        creation = create_log(db_session, make_entry(test_category))

        assert creation.visibility_count == 2
        records = db_session.query(LogWorkCenter).filter(LogWorkCenter.log_id == creation.log.id).all()
        assert sorted(r.work_center for r in records) == ["WC1", "WC2"]
        assert all(r.read_at is None for r in records)

    def test_category_without_work_centers(self, db_session, make_category, make_entry):
        category = make_category()
        creation = create_log(db_session, make_entry(category))
        assert creation.visibility_count == 0
        assert db_session.query(LogWorkCenter).count() == 0
        assert db_session.query(ShiftLog).count() == 1

    def test_schedules_dispatch_after_commit(self, db_session, test_category, make_entry):
        schedule = MagicMock()
        creation = create_log(db_session, make_entry(test_category), schedule)

        schedule.assert_called_once()
        fn, plan = schedule.call_args.args
        assert fn is dispatch_notification
        assert plan.details.log_id == str(creation.log.id)
        assert sorted(plan.recipients.emails) == ["quality@example.com", "shift.lead@example.com"]
        assert plan.recipients.chat_target.url == "https://chat.example.com/hook"

    def test_missing_field_rejected_before_write(self, db_session, test_category, make_entry):
        schedule = MagicMock()
        with pytest.raises(ValidationFailed, match="Subject is required"):
            create_log(db_session, make_entry(test_category, subject=""), schedule)
        assert db_session.query(ShiftLog).count() == 0
        schedule.assert_not_called()

    def test_overlong_field_rejected(self, db_session, test_category, make_entry):
        with pytest.raises(ValidationFailed, match="Shop order"):
            create_log(db_session, make_entry(test_category, shop_order="X" * 31))

    def test_split_is_optional(self, db_session, test_category, make_entry):
        creation = create_log(db_session, make_entry(test_category, split=None))
        assert creation.log.split == ""

    def test_invalid_category_id(self, db_session, test_category, make_entry):
        with pytest.raises(ValidationFailed):
            create_log(db_session, make_entry(test_category, category="nope"))

    def test_unknown_category(self, db_session, test_category, make_entry):
        with pytest.raises(NotFound):
            create_log(db_session, make_entry(test_category, category=str(uuid.uuid4())))

    def test_category_of_other_plant(self, db_session, make_category, make_entry):
        category = make_category(plant="2000")
        with pytest.raises(NotFound):
            create_log(db_session, make_entry(category, plant="1000"))

    def test_future_timestamp_is_clamped(self, db_session, test_category, make_entry):
        future = datetime.now(UTC) + timedelta(days=1)
        creation = create_log(db_session, make_entry(test_category, log_dt=future))
        assert as_utc(creation.log.created_at) <= datetime.now(UTC)

    def test_past_timestamp_is_kept(self, db_session, test_category, make_entry):
        past = datetime(2024, 5, 1, 8, 0, tzinfo=UTC)
        creation = create_log(db_session, make_entry(test_category, log_dt=past))
        assert as_utc(creation.log.created_at) == past

    def test_iso_string_timestamp_accepted(self, db_session, test_category, make_entry):
        creation = create_log(db_session, make_entry(test_category, log_dt="2024-05-01T08:00:00+00:00"))
        assert as_utc(creation.log.created_at) == datetime(2024, 5, 1, 8, 0, tzinfo=UTC)

    def test_unparseable_timestamp_rejected(self, db_session, test_category, make_entry):
        with pytest.raises(ValidationFailed, match="ISO 8601"):
            create_log(db_session, make_entry(test_category, log_dt="yesterday"))
        assert db_session.query(ShiftLog).count() == 0

    def test_non_string_field_rejected(self, db_session, test_category, make_entry):
        with pytest.raises(ValidationFailed, match="Plant must be a string"):
            create_log(db_session, make_entry(test_category, plant=1000))

    def test_dispatch_failure_does_not_undo_the_log(self, db_session, test_category, make_entry):
        with (
            patch("shiftbook.notifications.service.smtp_configured", return_value=True),
            patch("shiftbook.notifications.service.send_email", side_effect=RuntimeError("smtp down")),
            patch("shiftbook.notifications.service.send_chat_message", return_value=False),
        ):
            creation = create_log(db_session, make_entry(test_category), _run_now)

        assert db_session.get(ShiftLog, creation.log.id) is not None
        assert db_session.query(LogWorkCenter).count() == 2

    def test_storage_error_rolls_back(self, db_session, test_category, make_entry):
        schedule = MagicMock()
        with patch.object(db_session, "commit", side_effect=OperationalError("INSERT", {}, Exception("disk full"))):
            with pytest.raises(OperationalError):
                create_log(db_session, make_entry(test_category), schedule)

        schedule.assert_not_called()
        assert db_session.query(ShiftLog).count() == 0
        assert db_session.query(LogWorkCenter).count() == 0


class TestBatchCreateLogs:
    def test_partial_success(self, db_session, test_category, make_entry):
        schedule = MagicMock()
        entries = [
            make_entry(test_category),
            make_entry(test_category, work_center=None),
            make_entry(test_category, category=str(uuid.uuid4())),
        ]
        result = batch_create_logs(db_session, entries, schedule)

        assert result["success"] is False
        assert result["count"] == 1
        assert len(result["errors"]) == 2
        assert result["errors"][0].startswith("Log 2: ")
        assert result["errors"][1].startswith("Log 3: ")
        assert [item["ok"] for item in result["items"]] == [True, False, False]
        assert result["items"][0]["log_id"] == result["logs"][0]["id"]
        assert schedule.call_count == 1
        assert db_session.query(ShiftLog).count() == 1

    def test_mistyped_entries_reported_per_entry(self, db_session, test_category, make_entry):
        entries = [
            make_entry(test_category),
            make_entry(test_category, plant=1000),
            make_entry(test_category, log_dt="yesterday"),
        ]
        result = batch_create_logs(db_session, entries)

        assert result["count"] == 1
        assert result["errors"] == [
            "Log 2: Plant must be a string with maximum 4 characters",
            "Log 3: Log date must be an ISO 8601 timestamp",
        ]
        assert db_session.query(ShiftLog).count() == 1

    def test_all_valid(self, db_session, test_category, make_entry):
        result = batch_create_logs(db_session, [make_entry(test_category) for _ in range(3)])
        assert result["success"] is True
        assert result["count"] == 3
        assert result["errors"] == []
        assert db_session.query(LogWorkCenter).count() == 6

    def test_empty_batch_rejected(self, db_session):
        with pytest.raises(ValidationFailed):
            batch_create_logs(db_session, [])

    def test_oversized_batch_rejected(self, db_session, test_category, make_entry):
        entries = [make_entry(test_category) for _ in range(101)]
        with pytest.raises(ValidationFailed):
            batch_create_logs(db_session, entries)
        assert db_session.query(ShiftLog).count() == 0

    def test_storage_error_aborts_whole_batch(self, db_session, test_category, make_entry):
        schedule = MagicMock()
        entries = [make_entry(test_category) for _ in range(2)]
        with patch.object(db_session, "commit", side_effect=OperationalError("INSERT", {}, Exception("disk full"))):
            with pytest.raises(OperationalError):
                batch_create_logs(db_session, entries, schedule)

        schedule.assert_not_called()
        assert db_session.query(ShiftLog).count() == 0
