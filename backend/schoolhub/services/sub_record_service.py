# Overview: Service-layer operations for owned sub-records (addresses, numbers, emails, metadata pairs).

"""
Owned Sub-Record Service

Addresses, contact numbers, email addresses and name/value metadata pairs
belong to exactly one owner and live in per-owner-type tables
(learner_addresses, teacher_email_addresses, product_metadata, ...). The
owner type tag plus the record kind picks the table.

DEFAULT ENFORCEMENT:
- At most one live record per (owner, kind) has is_default=True.
- The first live record of a kind becomes the default automatically.
- Making a record default clears every other default of that owner and kind
  in the same transaction, and touches the owner so its row_version advances.
  Two concurrent set_default calls guarding on the same owner version
  therefore serialize: the loser gets ConcurrencyConflictError.
- Detaching the default promotes the oldest remaining live record. Detach
  does not touch the owner.
- Attaching any record touches the owner as well, so an attach racing a
  delete_owner fails instead of leaving a live record under a deleted owner.
"""

from __future__ import annotations

from ..extensions import db
from ..errors import NotFoundError
from ..validation import ValidationError
from .audit_service import stamp_created, stamp_modified, mark_deleted
from .concurrency import atomic, check_row_version
from .owner_service import get_bundle, require_owner, touch_owner


def _live_records(model, owner_id: str):
    return (
        db.session.query(model)
        .filter(model.entity_id == owner_id, model.is_deleted == False)  # noqa: E712
        .order_by(model.created_on.asc(), model.id.asc())
    )


def _clear_defaults(model, owner_id: str, actor: str | None, keep_id: str | None = None) -> None:
    rows = _live_records(model, owner_id).filter(model.is_default == True).all()  # noqa: E712
    for row in rows:
        if row.id == keep_id:
            continue
        row.is_default = False
        stamp_modified(row, actor)


def _require_record(model, record_id: str, owner_id: str | None = None):
    record = db.session.get(model, record_id)
    if record is None or record.is_deleted:
        raise NotFoundError(f"{model.SUB_RECORD_KIND} '{record_id}' not found")
    if owner_id is not None and record.entity_id != owner_id:
        raise NotFoundError(
            f"{model.SUB_RECORD_KIND} '{record_id}' does not belong to owner '{owner_id}'"
        )
    return record


def _apply_fields(record, fields: dict) -> None:
    for k, v in fields.items():
        if k == "is_default" or k not in record.MUTABLE_FIELDS:
            continue
        setattr(record, k, v)


def attach_sub_record(
    owner_type: str,
    kind: str,
    owner_id: str,
    fields: dict,
    actor: str | None = None,
):
    """
    Create a sub-record under a live owner.

    Raises:
        CrossTypeViolationError: owner type does not carry this kind
        OwnerNotFoundError / OwnerDeletedError
        ValidationError: required fields missing
    """
    bundle = get_bundle(owner_type)
    model = bundle.sub_record_model(kind)

    missing = [f for f in sorted(model.REQUIRED_FIELDS) if fields.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    with atomic():
        owner = require_owner(bundle, owner_id)

        has_default = (
            _live_records(model, owner.id).filter(model.is_default == True).first()  # noqa: E712
            is not None
        )
        make_default = bool(fields.get("is_default")) or not has_default

        if make_default and has_default:
            _clear_defaults(model, owner.id, actor)
        touch_owner(owner, actor)

        record = model(entity_id=owner.id)
        _apply_fields(record, fields)
        record.is_default = make_default
        stamp_created(record, actor)
    return record


def update_sub_record(
    owner_type: str,
    kind: str,
    record_id: str,
    fields: dict,
    expected_version: int | None = None,
    actor: str | None = None,
):
    """
    Patch a sub-record's columns.

    is_default=True behaves like set_default; is_default=False clears the
    flag and leaves the owner without a default of this kind.
    """
    bundle = get_bundle(owner_type)
    model = bundle.sub_record_model(kind)

    with atomic():
        record = _require_record(model, record_id)
        owner = require_owner(bundle, record.entity_id)
        check_row_version(record, expected_version)

        _apply_fields(record, fields)
        if "is_default" in fields:
            want = bool(fields["is_default"])
            if want and not record.is_default:
                _clear_defaults(model, owner.id, actor, keep_id=record.id)
            if want != record.is_default:
                record.is_default = want
                stamp_modified(owner, actor)
        stamp_modified(record, actor)
    return record


def set_default(
    owner_type: str,
    kind: str,
    owner_id: str,
    record_id: str,
    expected_owner_version: int | None = None,
    actor: str | None = None,
):
    """
    Make one record the owner's default for its kind.

    Raises:
        OwnerNotFoundError / OwnerDeletedError
        NotFoundError: record missing, deleted, or owned by someone else
        ConcurrencyConflictError: owner row_version moved on
    """
    bundle = get_bundle(owner_type)
    model = bundle.sub_record_model(kind)

    with atomic():
        owner = require_owner(bundle, owner_id)
        check_row_version(owner, expected_owner_version)
        record = _require_record(model, record_id, owner.id)

        _clear_defaults(model, owner.id, actor, keep_id=record.id)
        if not record.is_default:
            record.is_default = True
            stamp_modified(record, actor)
        stamp_modified(owner, actor)
    return record


def detach_sub_record(
    owner_type: str,
    kind: str,
    record_id: str,
    expected_version: int | None = None,
    actor: str | None = None,
):
    """Soft-delete one record; promote a successor if it was the default."""
    bundle = get_bundle(owner_type)
    model = bundle.sub_record_model(kind)

    with atomic():
        record = _require_record(model, record_id)
        check_row_version(record, expected_version)
        was_default = record.is_default

        record.is_default = False
        mark_deleted(record, actor)

        if was_default:
            successor = _live_records(model, record.entity_id).filter(model.id != record.id).first()
            if successor is not None:
                successor.is_default = True
                stamp_modified(successor, actor)
    return record


def get_sub_record(owner_type: str, kind: str, record_id: str, include_deleted: bool = False):
    model = get_bundle(owner_type).sub_record_model(kind)
    record = db.session.get(model, record_id)
    if record is None or (record.is_deleted and not include_deleted):
        raise NotFoundError(f"{kind} '{record_id}' not found")
    return record


def list_sub_records(
    owner_type: str,
    kind: str,
    owner_id: str,
    include_deleted: bool = False,
) -> list:
    """Default first, then oldest first."""
    bundle = get_bundle(owner_type)
    model = bundle.sub_record_model(kind)
    require_owner(bundle, owner_id, allow_deleted=include_deleted)

    q = db.session.query(model).filter(model.entity_id == owner_id)
    if not include_deleted:
        q = q.filter(model.is_deleted == False)  # noqa: E712
    return q.order_by(model.is_default.desc(), model.created_on.asc(), model.id.asc()).all()


def get_default_sub_record(owner_type: str, kind: str, owner_id: str):
    """The owner's live default record of a kind, or None."""
    bundle = get_bundle(owner_type)
    model = bundle.sub_record_model(kind)
    require_owner(bundle, owner_id)
    return _live_records(model, owner_id).filter(model.is_default == True).first()  # noqa: E712
