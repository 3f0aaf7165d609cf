# Overview: Service-layer operations linking owning entities to nodes of their category tree.

"""
Category Membership Service

(owner, category) pairs are unique per owner type table. Removing a
membership soft-deletes the row; adding the same pair again restores that
row instead of inserting a duplicate.
"""

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..errors import DuplicateMembershipError, NotFoundError
from .audit_service import stamp_created, stamp_modified, mark_deleted, mark_restored
from .category_service import require_category, subtree
from .concurrency import atomic
from .query_service import live
from .owner_service import get_bundle, require_owner, touch_owner


def _membership(model, owner_id: str, category_id: str):
    return (
        db.session.query(model)
        .filter(model.entity_id == owner_id, model.category_id == category_id)
        .first()
    )


def add_membership(owner_type: str, owner_id: str, category_id: str, actor: str | None = None):
    """
    Put a live owner into a live category of its own type's tree.

    Raises:
        CrossTypeViolationError: owner type has no tree, or category is from another tree
        OwnerNotFoundError / OwnerDeletedError / NotFoundError
        DuplicateMembershipError: pair already live
    """
    bundle = get_bundle(owner_type)
    model = bundle.membership_model()
    category_model = bundle.category_model()

    with atomic():
        owner = require_owner(bundle, owner_id)
        category = require_category(category_model, category_id)

        row = _membership(model, owner.id, category.id)
        if row is not None and not row.is_deleted:
            raise DuplicateMembershipError(
                f"{owner_type} '{owner_id}' is already in category '{category.name}'"
            )
        if row is not None:
            mark_restored(row)
            stamp_modified(row, actor)
        else:
            row = model(entity_id=owner.id, category_id=category.id)
            stamp_created(row, actor)
        touch_owner(owner, actor)
    return row


def remove_membership(owner_type: str, owner_id: str, category_id: str, actor: str | None = None):
    bundle = get_bundle(owner_type)
    model = bundle.membership_model()

    with atomic():
        row = _membership(model, owner_id, category_id)
        if row is None or row.is_deleted:
            raise NotFoundError(
                f"{owner_type} '{owner_id}' is not a member of category '{category_id}'"
            )
        mark_deleted(row, actor)
    return row


def list_categories_for_owner(owner_type: str, owner_id: str, include_deleted: bool = False) -> list:
    """
    Categories the owner belongs to, by name. include_deleted adds removed
    memberships and deleted categories (and allows a deleted owner).
    """
    bundle = get_bundle(owner_type)
    model = bundle.membership_model()
    category_model = bundle.category_model()
    require_owner(bundle, owner_id, allow_deleted=include_deleted)

    q = db.session.query(category_model).join(model, model.category_id == category_model.id)
    q = live(live(q, model, include_deleted), category_model, include_deleted)
    return (
        q.filter(model.entity_id == owner_id)
        .distinct()
        .order_by(category_model.name.asc(), category_model.id.asc())
        .all()
    )


def _category_ids(bundle, category_id: str, include_subcategories: bool, include_deleted: bool) -> list[str]:
    category_model = bundle.category_model()
    category = require_category(category_model, category_id, allow_deleted=include_deleted)
    if not include_subcategories:
        return [category.id]
    return [node.id for node in subtree(category_model, category, include_deleted)]


def list_members(
    owner_type: str,
    category_id: str,
    include_subcategories: bool = False,
    include_deleted: bool = False,
) -> list:
    """
    Owners in a category (optionally in its whole subtree), oldest first.
    Live memberships of live owners unless include_deleted.
    """
    bundle = get_bundle(owner_type)
    model = bundle.membership_model()
    owner_model = bundle.owner
    ids = _category_ids(bundle, category_id, include_subcategories, include_deleted)

    q = db.session.query(owner_model).join(model, model.entity_id == owner_model.id)
    q = live(live(q, model, include_deleted), owner_model, include_deleted)
    return (
        q.filter(model.category_id.in_(ids))
        .distinct()
        .order_by(owner_model.created_on.asc(), owner_model.id.asc())
        .all()
    )


def count_members(
    owner_type: str,
    category_id: str,
    include_subcategories: bool = False,
    include_deleted: bool = False,
) -> int:
    bundle = get_bundle(owner_type)
    model = bundle.membership_model()
    owner_model = bundle.owner
    ids = _category_ids(bundle, category_id, include_subcategories, include_deleted)

    q = (
        db.session.query(func.count(func.distinct(model.entity_id)))
        .select_from(model)
        .join(owner_model, model.entity_id == owner_model.id)
    )
    q = live(live(q, model, include_deleted), owner_model, include_deleted)
    return q.filter(model.category_id.in_(ids)).scalar()
