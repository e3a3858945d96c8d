"""Tests for category administration and the work-center fan-out set."""

import uuid

import pytest

from shiftbook.categories.schemas import CategoryPayload
from shiftbook.categories.service import (
    build_visibility_set,
    category_to_dict,
    create_category,
    delete_category,
    describe,
    get_category,
    list_categories,
    update_category,
)
from shiftbook.errors import NotFound, ValidationFailed
from shiftbook.logs.service import create_log


def _payload(**overrides):
    data = {
        "plant": "1000",
        "send_mail": True,
        "mails": ["a@example.com"],
        "work_centers": ["WC1", "WC2"],
        "translations": [{"language": "en", "description": "Maintenance"}],
    }
    data.update(overrides)
    return CategoryPayload(**data)


class TestCreateCategory:
    def test_creates_with_children(self, db_session):
        category = create_category(db_session, _payload())
        db_session.commit()

        loaded = get_category(db_session, category.id, "1000")
        assert loaded is not None
        assert [m.mail_address for m in loaded.mails] == ["a@example.com"]
        assert sorted(wc.work_center for wc in loaded.work_centers) == ["WC1", "WC2"]

    def test_duplicate_mails_are_collapsed(self, db_session):
        category = create_category(db_session, _payload(mails=["a@example.com", "A@example.com"]))
        assert len(category.mails) == 1

    def test_rejects_invalid_mail(self, db_session):
        with pytest.raises(ValidationFailed):
            create_category(db_session, _payload(mails=["not-an-address"]))

    def test_rejects_blank_work_center(self, db_session):
        with pytest.raises(ValidationFailed):
            create_category(db_session, _payload(work_centers=["  "]))


class TestUpdateCategory:
    def test_replaces_lists_and_keeps_unchanged_rows(self, db_session):
        category = create_category(db_session, _payload())
        db_session.commit()

        update_category(db_session, str(category.id), _payload(work_centers=["WC2", "WC3"], mails=[]))
        db_session.commit()

        loaded = get_category(db_session, category.id)
        assert sorted(wc.work_center for wc in loaded.work_centers) == ["WC2", "WC3"]
        assert loaded.mails == []

    def test_chat_channel_updated_in_place(self, db_session):
        chat = {"name": "one", "webhook_url": "https://chat.example.com/1", "active": True}
        category = create_category(db_session, _payload(chat_channel=chat))
        db_session.commit()
        channel_id = category.chat_channel.id

        chat["active"] = False
        update_category(db_session, str(category.id), _payload(chat_channel=chat))
        db_session.commit()

        loaded = get_category(db_session, category.id)
        assert loaded.chat_channel.id == channel_id
        assert loaded.chat_channel.active is False

    def test_keep_chat_when_not_replacing(self, db_session):
        chat = {"name": "one", "webhook_url": "https://chat.example.com/1"}
        category = create_category(db_session, _payload(chat_channel=chat))
        db_session.commit()

        update_category(db_session, str(category.id), _payload(), replace_chat=False)
        db_session.commit()
        assert get_category(db_session, category.id).chat_channel is not None

    def test_unknown_category(self, db_session):
        with pytest.raises(NotFound):
            update_category(db_session, str(uuid.uuid4()), _payload())

    def test_existing_logs_keep_their_visibility(self, db_session, test_category, make_entry):
        creation = create_log(db_session, make_entry(test_category))

        update_category(db_session, str(test_category.id), _payload(work_centers=["WC9"]))
        db_session.commit()

        db_session.refresh(creation.log)
        assert sorted(r.work_center for r in creation.log.visibility) == ["WC1", "WC2"]


class TestDeleteCategory:
    def test_deletes_unused_category(self, db_session):
        category = create_category(db_session, _payload())
        db_session.commit()

        delete_category(db_session, str(category.id))
        db_session.commit()
        assert get_category(db_session, category.id) is None

    def test_rejects_category_with_logs(self, db_session, test_category, make_entry):
        create_log(db_session, make_entry(test_category))
        with pytest.raises(ValidationFailed):
            delete_category(db_session, str(test_category.id))

    def test_unknown_category(self, db_session):
        with pytest.raises(NotFound):
            delete_category(db_session, str(uuid.uuid4()))


class TestListAndDescribe:
    def test_lists_by_plant(self, db_session, make_category):
        make_category(plant="1000")
        make_category(plant="2000")
        assert len(list_categories(db_session, "1000")) == 1

    def test_describe_uses_requested_language(self, test_category):
        assert describe(test_category, "de") == ("Qualitätsproblem", "de")

    def test_describe_falls_back_to_english(self, test_category):
        assert describe(test_category, "fr") == ("Quality issue", "en")

    def test_describe_without_translation(self, make_category):
        category = make_category()
        description, language = describe(category, "en")
        assert description == f"Category {category.id}"
        assert language == "none"

    def test_category_to_dict(self, test_category):
        data = category_to_dict(test_category)
        assert data["plant"] == "1000"
        assert data["description"] == "Quality issue"
        assert data["chat_channel"]["active"] is True


class TestBuildVisibilitySet:
    def test_returns_required_work_centers(self, db_session, test_category):
        assert build_visibility_set(db_session, test_category.id) == ["WC1", "WC2"]

    def test_empty_is_valid(self, db_session, make_category):
        category = make_category()
        assert build_visibility_set(db_session, category.id) == []
