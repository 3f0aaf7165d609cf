"""
Owned sub-records: default flag bookkeeping, detach, cross-type rejection.
"""

import pytest

from schoolhub.errors import (
    ConcurrencyConflictError,
    CrossTypeViolationError,
    NotFoundError,
    OwnerDeletedError,
)
from schoolhub.services import owner_service, sub_record_service
from schoolhub.validation import ValidationError


def _address(street: str, **extra) -> dict:
    return {"street_name": street, "street_number": "12", "city": "Pretoria", **extra}


def _defaults(owner_id: str, kind: str = "address") -> list:
    return [
        r for r in sub_record_service.list_sub_records("teacher", kind, owner_id)
        if r.is_default
    ]


class TestDefaultFlag:
    def test_first_record_becomes_default(self, teacher):
        first = sub_record_service.attach_sub_record("teacher", "address", teacher.id, _address("Church St"))
        assert first.is_default is True

        second = sub_record_service.attach_sub_record("teacher", "address", teacher.id, _address("Park Rd"))
        assert second.is_default is False
        assert [r.id for r in _defaults(teacher.id)] == [first.id]

    def test_attach_as_default_replaces_previous_default(self, teacher):
        a1 = sub_record_service.attach_sub_record("teacher", "address", teacher.id, _address("Church St"))
        a2 = sub_record_service.attach_sub_record(
            "teacher", "address", teacher.id, _address("Park Rd", is_default=True)
        )

        assert sub_record_service.get_sub_record("teacher", "address", a1.id).is_default is False
        assert sub_record_service.get_sub_record("teacher", "address", a2.id).is_default is True
        default = sub_record_service.get_default_sub_record("teacher", "address", teacher.id)
        assert default.id == a2.id

    def test_set_default_swaps_and_bumps_owner_version(self, teacher):
        a1 = sub_record_service.attach_sub_record("teacher", "address", teacher.id, _address("Church St"))
        a2 = sub_record_service.attach_sub_record("teacher", "address", teacher.id, _address("Park Rd"))
        before = owner_service.get_owner("teacher", teacher.id).row_version

        sub_record_service.set_default("teacher", "address", teacher.id, a2.id, expected_owner_version=before)

        assert [r.id for r in _defaults(teacher.id)] == [a2.id]
        assert sub_record_service.get_sub_record("teacher", "address", a1.id).is_default is False
        assert owner_service.get_owner("teacher", teacher.id).row_version == before + 1

    def test_concurrent_set_default_loser_gets_conflict(self, teacher):
        a1 = sub_record_service.attach_sub_record("teacher", "address", teacher.id, _address("Church St"))
        a2 = sub_record_service.attach_sub_record("teacher", "address", teacher.id, _address("Park Rd"))
        seen = owner_service.get_owner("teacher", teacher.id).row_version

        sub_record_service.set_default("teacher", "address", teacher.id, a2.id, expected_owner_version=seen)
        with pytest.raises(ConcurrencyConflictError):
            sub_record_service.set_default("teacher", "address", teacher.id, a1.id, expected_owner_version=seen)

        assert [r.id for r in _defaults(teacher.id)] == [a2.id]

    def test_default_count_never_exceeds_one(self, teacher):
        ids = []
        for i, street in enumerate(("A St", "B St", "C St", "D St")):
            rec = sub_record_service.attach_sub_record(
                "teacher", "address", teacher.id, _address(street, is_default=(i % 2 == 1))
            )
            ids.append(rec.id)
            assert len(_defaults(teacher.id)) == 1

        for rid in reversed(ids):
            sub_record_service.set_default("teacher", "address", teacher.id, rid)
            assert [r.id for r in _defaults(teacher.id)] == [rid]

    def test_update_to_default_clears_others(self, teacher):
        a1 = sub_record_service.attach_sub_record("teacher", "address", teacher.id, _address("Church St"))
        a2 = sub_record_service.attach_sub_record("teacher", "address", teacher.id, _address("Park Rd"))

        sub_record_service.update_sub_record("teacher", "address", a2.id, {"is_default": True, "suburb": "Hatfield"})

        refreshed = sub_record_service.get_sub_record("teacher", "address", a2.id)
        assert refreshed.suburb == "Hatfield"
        assert [r.id for r in _defaults(teacher.id)] == [a2.id]
        assert sub_record_service.get_sub_record("teacher", "address", a1.id).is_default is False

    def test_kinds_have_independent_defaults(self, teacher):
        addr = sub_record_service.attach_sub_record("teacher", "address", teacher.id, _address("Church St"))
        num = sub_record_service.attach_sub_record("teacher", "contact_number", teacher.id, {"number": "0123"})

        assert addr.is_default is True
        assert num.is_default is True


class TestDetach:
    def test_detach_soft_deletes_and_leaves_owner_alone(self, teacher):
        a1 = sub_record_service.attach_sub_record("teacher", "address", teacher.id, _address("Church St"))
        a2 = sub_record_service.attach_sub_record("teacher", "address", teacher.id, _address("Park Rd"))
        version = owner_service.get_owner("teacher", teacher.id).row_version

        sub_record_service.detach_sub_record("teacher", "address", a2.id)

        gone = sub_record_service.get_sub_record("teacher", "address", a2.id, include_deleted=True)
        assert gone.is_deleted is True
        assert [r.id for r in sub_record_service.list_sub_records("teacher", "address", teacher.id)] == [a1.id]
        assert owner_service.get_owner("teacher", teacher.id).row_version == version

    def test_detaching_default_promotes_oldest_remaining(self, teacher):
        a1 = sub_record_service.attach_sub_record("teacher", "address", teacher.id, _address("Church St"))
        a2 = sub_record_service.attach_sub_record("teacher", "address", teacher.id, _address("Park Rd"))
        a3 = sub_record_service.attach_sub_record("teacher", "address", teacher.id, _address("Long St"))

        sub_record_service.detach_sub_record("teacher", "address", a1.id)

        assert [r.id for r in _defaults(teacher.id)] == [a2.id]
        assert sub_record_service.get_sub_record("teacher", "address", a3.id).is_default is False

    def test_detaching_last_record_leaves_no_default(self, teacher):
        a1 = sub_record_service.attach_sub_record("teacher", "address", teacher.id, _address("Church St"))
        sub_record_service.detach_sub_record("teacher", "address", a1.id)

        assert sub_record_service.get_default_sub_record("teacher", "address", teacher.id) is None

    def test_detach_twice_is_not_found(self, teacher):
        a1 = sub_record_service.attach_sub_record("teacher", "address", teacher.id, _address("Church St"))
        sub_record_service.detach_sub_record("teacher", "address", a1.id)

        with pytest.raises(NotFoundError):
            sub_record_service.detach_sub_record("teacher", "address", a1.id)


class TestOwnership:
    def test_attach_to_deleted_owner_rejected(self, teacher):
        owner_service.delete_owner("teacher", teacher.id)

        with pytest.raises(OwnerDeletedError):
            sub_record_service.attach_sub_record("teacher", "address", teacher.id, _address("Church St"))

    def test_kind_not_carried_by_owner_type(self, product):
        with pytest.raises(CrossTypeViolationError):
            sub_record_service.attach_sub_record("product", "address", product.id, _address("Church St"))

    def test_set_default_with_someone_elses_record(self, teacher):
        other = owner_service.create_owner("teacher", {"first_name": "Sipho", "last_name": "Dube"})
        theirs = sub_record_service.attach_sub_record("teacher", "address", other.id, _address("Far St"))

        with pytest.raises(NotFoundError):
            sub_record_service.set_default("teacher", "address", teacher.id, theirs.id)

    def test_required_fields_enforced(self, teacher):
        with pytest.raises(ValidationError):
            sub_record_service.attach_sub_record("teacher", "address", teacher.id, {"city": "Durban"})


class TestMetadataPairs:
    def test_product_carries_name_value_pairs(self, product):
        colour = sub_record_service.attach_sub_record(
            "product", "metadata", product.id, {"name": "Colour", "value": "Navy"}
        )
        size = sub_record_service.attach_sub_record(
            "product", "metadata", product.id, {"name": "Size", "value": "XL"}
        )

        rows = sub_record_service.list_sub_records("product", "metadata", product.id)
        assert [(r.name, r.value) for r in rows] == [("Colour", "Navy"), ("Size", "XL")]
        assert colour.is_default is True
        assert size.is_default is False
        assert size.to_dict()["name"] == "Size"

    def test_pairs_follow_owner_delete(self, product):
        pair = sub_record_service.attach_sub_record(
            "product", "metadata", product.id, {"name": "Material", "value": "Cotton"}
        )
        owner_service.delete_owner("product", product.id)

        assert sub_record_service.get_sub_record(
            "product", "metadata", pair.id, include_deleted=True
        ).is_deleted is True

    def test_name_required(self, product):
        with pytest.raises(ValidationError):
            sub_record_service.attach_sub_record("product", "metadata", product.id, {"value": "Navy"})

    def test_teacher_has_no_metadata(self, teacher):
        with pytest.raises(CrossTypeViolationError):
            sub_record_service.attach_sub_record("teacher", "metadata", teacher.id, {"name": "Room"})
