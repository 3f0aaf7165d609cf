"""
Audit stamping, soft delete and optimistic concurrency on owning entities.
"""

import pytest
from sqlalchemy import text

from schoolhub.extensions import db
from schoolhub.errors import (
    ConcurrencyConflictError,
    NotFoundError,
    OwnerDeletedError,
    OwnerNotFoundError,
)
from schoolhub.models import Product
from schoolhub.services import owner_service, sub_record_service, media_service
from schoolhub.validation import ValidationError


class TestStamping:
    def test_create_stamps_creator_and_starts_live(self, product):
        assert product.created_by == "tester"
        assert product.created_on is not None
        assert product.last_modified_by is None
        assert product.last_modified_on is None
        assert product.is_deleted is False
        assert product.deleted_on is None
        assert product.row_version == 1

    def test_update_stamps_modifier_and_bumps_version(self, product):
        updated = owner_service.update_owner(
            "product", product.id, {"name": "Match Ball"}, expected_version=1, actor="editor"
        )

        assert updated.name == "Match Ball"
        assert updated.last_modified_by == "editor"
        assert updated.last_modified_on is not None
        assert updated.row_version == 2

    def test_unknown_fields_are_ignored_by_service(self, product):
        updated = owner_service.update_owner("product", product.id, {"row_version": 99, "id": "x"})
        assert updated.id == product.id
        assert updated.row_version == 2

    def test_create_requires_required_fields(self, db_session):
        with pytest.raises(ValidationError):
            owner_service.create_owner("product", {"sku": "NO-NAME"})

    def test_unknown_owner_type(self, db_session):
        with pytest.raises(NotFoundError):
            owner_service.create_owner("spaceship", {"name": "x"})


class TestSoftDelete:
    def test_deleted_owner_hidden_from_default_reads(self, product, other_product):
        owner_service.delete_owner("product", product.id)

        listed = owner_service.list_owners("product")
        assert [p["id"] for p in listed["items"]] == [other_product.id]

        with pytest.raises(NotFoundError):
            owner_service.get_owner("product", product.id)

        again = owner_service.get_owner("product", product.id, include_deleted=True)
        assert again.is_deleted is True
        assert again.deleted_on is not None

        everything = owner_service.list_owners("product", include_deleted=True)
        assert everything["count"] == 2

    def test_mutating_deleted_owner_raises_owner_deleted(self, product):
        owner_service.delete_owner("product", product.id)

        with pytest.raises(OwnerDeletedError) as exc:
            owner_service.update_owner("product", product.id, {"name": "Zombie"})
        # Callers catching "not found" also catch "deleted"
        assert isinstance(exc.value, OwnerNotFoundError)

    def test_missing_owner_raises_owner_not_found(self, db_session):
        with pytest.raises(OwnerNotFoundError):
            owner_service.update_owner("product", "does-not-exist", {"name": "x"})

    def test_delete_cascades_to_dependents_with_same_timestamp(self, teacher, images):
        number = sub_record_service.attach_sub_record(
            "teacher", "contact_number", teacher.id, {"number": "0821234567"}
        )
        email = sub_record_service.attach_sub_record(
            "teacher", "email_address", teacher.id, {"email_address": "t@school.test"}
        )
        photo = media_service.attach_media("teacher", "image", teacher.id, images[0].id)

        owner_service.delete_owner("teacher", teacher.id)

        owner = owner_service.get_owner("teacher", teacher.id, include_deleted=True)
        for row in (
            sub_record_service.get_sub_record("teacher", "contact_number", number.id, include_deleted=True),
            sub_record_service.get_sub_record("teacher", "email_address", email.id, include_deleted=True),
            media_service.get_attachment("teacher", "image", photo.id, include_deleted=True),
        ):
            assert row.is_deleted is True
            assert row.deleted_on == owner.deleted_on

        # Shared media row is untouched
        assert media_service.get_media("image", images[0].id).is_deleted is False

    def test_restore_brings_back_cascaded_rows_only(self, teacher):
        early = sub_record_service.attach_sub_record(
            "teacher", "email_address", teacher.id, {"email_address": "old@school.test"}
        )
        kept = sub_record_service.attach_sub_record(
            "teacher", "email_address", teacher.id, {"email_address": "new@school.test"}
        )
        sub_record_service.detach_sub_record("teacher", "email_address", early.id)

        owner_service.delete_owner("teacher", teacher.id)
        restored = owner_service.restore_owner("teacher", teacher.id)

        assert restored.is_deleted is False
        assert restored.deleted_on is None
        live = sub_record_service.list_sub_records("teacher", "email_address", teacher.id)
        assert [r.id for r in live] == [kept.id]

    def test_restore_live_owner_rejected(self, product):
        with pytest.raises(ValidationError):
            owner_service.restore_owner("product", product.id)

    def test_category_owner_types_use_category_operations(self, db_session):
        with pytest.raises(ValidationError):
            owner_service.create_owner("product_category", {"name": "Sport"})


class TestConcurrency:
    def test_stale_expected_version_rejected(self, product):
        seen = product.row_version
        owner_service.update_owner("product", product.id, {"name": "First"}, expected_version=seen)

        with pytest.raises(ConcurrencyConflictError):
            owner_service.update_owner("product", product.id, {"name": "Second"}, expected_version=seen)

        assert owner_service.get_owner("product", product.id).name == "First"

    def test_two_updates_from_same_version_exactly_one_commits(self, product):
        seen = product.row_version
        outcomes = []
        for name in ("Writer A", "Writer B"):
            try:
                owner_service.update_owner("product", product.id, {"name": name}, expected_version=seen)
                outcomes.append("ok")
            except ConcurrencyConflictError:
                outcomes.append("conflict")

        assert sorted(outcomes) == ["conflict", "ok"]

    def test_row_changed_underneath_loaded_copy_is_a_conflict(self, product):
        loaded = db.session.get(Product, product.id)
        assert loaded.row_version == 1

        # Another writer bumps the version behind the session's back
        db.session.execute(
            text("UPDATE products SET row_version = row_version + 1 WHERE id = :id"),
            {"id": product.id},
        )

        with pytest.raises(ConcurrencyConflictError):
            owner_service.update_owner("product", product.id, {"name": "Lost update"})

        fresh = owner_service.get_owner("product", product.id)
        assert fresh.name == "Soccer Ball"

    def test_stale_delete_rejected(self, product):
        owner_service.update_owner("product", product.id, {"name": "Moved on"})

        with pytest.raises(ConcurrencyConflictError):
            owner_service.delete_owner("product", product.id, expected_version=1)

        assert owner_service.get_owner("product", product.id).is_deleted is False
