# Overview: Service-layer operations for owning entities; lifecycle and cascading soft delete.

"""
Owning Entity Service

Generic CRUD over any instantiated owner type (product, learner,
activity_group, ...), addressed by owner type tag.

CASCADE POLICY (soft delete):
- Deleting an owner soft-deletes, in the same transaction and with the same
  deleted_on instant: its sub-records, its media attachment rows and its
  category memberships.
- Shared media rows and category nodes are NOT touched.
- Restoring an owner restores the dependents that were deleted at that same
  instant, so rows detached earlier stay detached.

Category nodes are owners too (they carry images) but their lifecycle goes
through category_service, which knows about the tree.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import NotFoundError, OwnerNotFoundError, OwnerDeletedError
from ..models import OWNER_TYPES, OwnerBundle
from ..validation import ValidationError
from .audit_service import stamp_created, stamp_modified, mark_deleted, mark_restored
from .concurrency import atomic, check_row_version
from .query_service import live, paginate
from ..time_utils import utcnow


def get_bundle(owner_type: str) -> OwnerBundle:
    """Resolve an owner type tag to its generated models."""
    bundle = OWNER_TYPES.get(owner_type)
    if bundle is None:
        raise NotFoundError(f"Unknown owner type '{owner_type}'")
    return bundle


def list_owner_types() -> list[dict]:
    return [OWNER_TYPES[tag].describe() for tag in sorted(OWNER_TYPES)]


def require_owner(bundle: OwnerBundle, owner_id: str, *, allow_deleted: bool = False):
    """
    Load an owner for mutation.

    Raises:
        OwnerNotFoundError: no such row in this owner type's table
        OwnerDeletedError: row exists but is soft-deleted (unless allow_deleted)
    """
    owner = db.session.get(bundle.owner, owner_id)
    if owner is None:
        raise OwnerNotFoundError(f"{bundle.owner_type} '{owner_id}' not found")
    if owner.is_deleted and not allow_deleted:
        raise OwnerDeletedError(f"{bundle.owner_type} '{owner_id}' is deleted")
    return owner


def touch_owner(owner, actor: str | None = None) -> None:
    """
    Stamp the owner as modified inside the current unit of work.

    Every dependent insert calls this, so the owner UPDATE carries the
    row_version check against a concurrent delete_owner: the side that
    commits second gets ConcurrencyConflictError.
    """
    stamp_modified(owner, actor)


def _require_plain_owner_type(owner_type: str) -> OwnerBundle:
    bundle = get_bundle(owner_type)
    if bundle.tree_of is not None:
        raise ValidationError(
            f"'{owner_type}' rows are categories; use the category operations"
        )
    return bundle


def _apply_patch(owner, patch: dict) -> None:
    for k, v in patch.items():
        if k not in owner.MUTABLE_FIELDS:
            continue
        setattr(owner, k, v)


def create_owner(owner_type: str, patch: dict, actor: str | None = None):
    bundle = _require_plain_owner_type(owner_type)
    missing = [f for f in sorted(bundle.owner.REQUIRED_FIELDS) if patch.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    with atomic():
        owner = bundle.owner()
        _apply_patch(owner, patch)
        stamp_created(owner, actor)
    return owner


def get_owner(owner_type: str, owner_id: str, include_deleted: bool = False):
    bundle = get_bundle(owner_type)
    owner = db.session.get(bundle.owner, owner_id)
    if owner is None or (owner.is_deleted and not include_deleted):
        raise NotFoundError(f"{owner_type} '{owner_id}' not found")
    return owner


def list_owners(
    owner_type: str,
    include_deleted: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    bundle = _require_plain_owner_type(owner_type)
    model = bundle.owner
    q = live(db.session.query(model), model, include_deleted).order_by(
        model.created_on.asc(), model.id.asc()
    )
    return paginate(q, page, per_page)


def update_owner(
    owner_type: str,
    owner_id: str,
    patch: dict,
    expected_version: int | None = None,
    actor: str | None = None,
):
    """
    Update an owner's own columns.

    Raises:
        OwnerNotFoundError / OwnerDeletedError
        ConcurrencyConflictError: expected_version is stale
    """
    bundle = _require_plain_owner_type(owner_type)
    with atomic():
        owner = require_owner(bundle, owner_id)
        check_row_version(owner, expected_version)
        _apply_patch(owner, patch)
        stamp_modified(owner, actor)
    return owner


def cascade_soft_delete(bundle: OwnerBundle, owner, when, actor: str | None = None) -> int:
    """
    Soft-delete every live dependent row of one owner. Does not commit.

    Returns the number of rows flagged.
    """
    count = 0
    for model in bundle.dependents():
        rows = (
            db.session.query(model)
            .filter(model.entity_id == owner.id, model.is_deleted == False)  # noqa: E712
            .all()
        )
        for row in rows:
            mark_deleted(row, actor, when)
            count += 1
    return count


def delete_owner(
    owner_type: str,
    owner_id: str,
    expected_version: int | None = None,
    actor: str | None = None,
):
    """
    Soft-delete an owner and cascade to its dependents (one transaction).

    Raises:
        OwnerNotFoundError / OwnerDeletedError (already deleted)
        ConcurrencyConflictError
    """
    bundle = _require_plain_owner_type(owner_type)
    with atomic():
        owner = require_owner(bundle, owner_id)
        check_row_version(owner, expected_version)
        when = utcnow()
        mark_deleted(owner, actor, when)
        cascaded = cascade_soft_delete(bundle, owner, when, actor)

    current_app.logger.info(
        "Soft-deleted %s %s with %d dependent rows", owner_type, owner_id, cascaded
    )
    return owner


def restore_owner(owner_type: str, owner_id: str, actor: str | None = None):
    """
    Restore a soft-deleted owner plus the dependents deleted in the same cascade.

    Raises:
        OwnerNotFoundError: no such owner
        ValidationError: owner is not deleted
    """
    bundle = _require_plain_owner_type(owner_type)
    with atomic():
        owner = require_owner(bundle, owner_id, allow_deleted=True)
        if not owner.is_deleted:
            raise ValidationError(f"{owner_type} '{owner_id}' is not deleted")

        deleted_on = owner.deleted_on
        mark_restored(owner)
        stamp_modified(owner, actor)

        for model in bundle.dependents():
            rows = (
                db.session.query(model)
                .filter(
                    model.entity_id == owner.id,
                    model.is_deleted == True,  # noqa: E712
                    model.deleted_on == deleted_on,
                )
                .all()
            )
            for row in rows:
                mark_restored(row)
    return owner
