# Overview: Service-layer operations for per-owner-type category trees.

"""
Category Tree Service

Every owning type that declares categories has its own self-referencing tree
(product_categories, activity_group_categories, ...). Trees never mix: a
category id from another type's tree is rejected with CrossTypeViolationError.

TREE INVARIANT:
- parent_category_id is NULL (root) or references a live node of the same
  table.
- Following parents from any node reaches a root without revisiting a node.
  Walks are bounded by min(rows in the table, CATEGORY_MAX_DEPTH); running
  past the bound, revisiting a node, or hitting a dangling parent raises
  CycleDetectedError.

DELETE MODES:
- restrict: refuse while live children exist (HasChildrenError)
- cascade: soft-delete the whole subtree
- reparent_children: re-point direct children at the deleted node's parent

In every mode the memberships and image attachments of each removed node are
soft-deleted in the same transaction. Member entities themselves are not
touched.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func, or_, exists
from sqlalchemy.orm import aliased

from ..extensions import db
from ..errors import (
    NotFoundError,
    CrossTypeViolationError,
    CycleDetectedError,
    HasChildrenError,
)
from ..models import OWNER_TYPES
from ..validation import ValidationError, enforce_delete_mode
from .audit_service import stamp_created, stamp_modified, mark_deleted
from .concurrency import atomic, check_row_version
from .owner_service import get_bundle, cascade_soft_delete
from .query_service import live, paginate
from ..time_utils import utcnow


def _tree(owner_type: str):
    bundle = get_bundle(owner_type)
    return bundle, bundle.category_model()


def require_category(model, category_id: str, *, allow_deleted: bool = False):
    """
    Load a node of this tree.

    An id that exists in a different owner type's tree is a cross-type
    violation, not a plain miss.
    """
    node = db.session.get(model, category_id)
    if node is None:
        for bundle in OWNER_TYPES.values():
            other = bundle.category
            if other is None or other is model:
                continue
            if db.session.get(other, category_id) is not None:
                raise CrossTypeViolationError(
                    f"Category '{category_id}' belongs to the '{bundle.owner_type}' tree, "
                    f"not '{model.TREE_OF}'"
                )
        raise NotFoundError(f"Category '{category_id}' not found")
    if node.is_deleted and not allow_deleted:
        raise NotFoundError(f"Category '{category_id}' not found")
    return node


def _max_depth() -> int:
    return current_app.config.get("CATEGORY_MAX_DEPTH", 64)


def _walk_bound(model) -> int:
    rows = db.session.query(func.count(model.id)).scalar() or 0
    return min(rows, _max_depth())


def _ancestor_ids(model, start_id: str | None) -> list[str]:
    """Ids from start_id up to its root, start_id first."""
    bound = _walk_bound(model)
    chain: list[str] = []
    current = start_id
    while current is not None:
        if current in chain:
            raise CycleDetectedError(f"Category '{current}' appears twice in its ancestor chain")
        if len(chain) >= bound:
            raise CycleDetectedError(
                f"Ancestor walk from '{start_id}' exceeded {bound} steps"
            )
        node = db.session.get(model, current)
        if node is None:
            raise CycleDetectedError(f"Category '{current}' references a missing parent")
        chain.append(current)
        current = node.parent_category_id
    return chain


def _check_depth(parent_chain: list[str], levels: int) -> None:
    """
    Reject placing `levels` levels of nodes under the node whose ancestor
    chain is parent_chain. Every node must stay within CATEGORY_MAX_DEPTH so
    its own ancestor walk succeeds.
    """
    depth = len(parent_chain) + levels
    limit = _max_depth()
    if depth > limit:
        raise CycleDetectedError(
            f"Category would sit {depth} levels deep; the limit is {limit}"
        )


def _children(model, category_id: str, include_deleted: bool = False):
    return (
        live(db.session.query(model), model, include_deleted)
        .filter(model.parent_category_id == category_id)
        .order_by(model.name.asc(), model.id.asc())
    )


def subtree(model, root, include_deleted: bool = False) -> list:
    """Root plus every live (or, with include_deleted, every) descendant, parents before children."""
    bound = db.session.query(func.count(model.id)).scalar() or 0
    nodes = [root]
    seen = {root.id}
    i = 0
    while i < len(nodes):
        for child in _children(model, nodes[i].id, include_deleted).all():
            if child.id in seen or len(nodes) >= bound:
                raise CycleDetectedError(f"Subtree of '{root.id}' is not a tree")
            seen.add(child.id)
            nodes.append(child)
        i += 1
    return nodes


def _subtree_height(model, root) -> int:
    """Levels in root's live subtree, root included."""
    depth = {root.id: 1}
    for node in subtree(model, root)[1:]:
        depth[node.id] = depth[node.parent_category_id] + 1
    return max(depth.values())


def _retire(bundle, node, when, actor: str | None) -> None:
    """Soft-delete one node with its memberships and image attachments."""
    membership = bundle.membership_model()
    rows = (
        db.session.query(membership)
        .filter(membership.category_id == node.id, membership.is_deleted == False)  # noqa: E712
        .all()
    )
    for row in rows:
        mark_deleted(row, actor, when)

    cascade_soft_delete(OWNER_TYPES[f"{bundle.owner_type}_category"], node, when, actor)
    mark_deleted(node, actor, when)


def _apply_fields(node, fields: dict) -> None:
    for k, v in fields.items():
        if k in node.MUTABLE_FIELDS:
            setattr(node, k, v)


def category_to_dict(owner_type: str, node) -> dict:
    """Node columns plus live member and live subcategory counts."""
    bundle, model = _tree(owner_type)
    membership = bundle.membership_model()
    entity_count = (
        db.session.query(func.count(membership.id))
        .filter(membership.category_id == node.id, membership.is_deleted == False)  # noqa: E712
        .scalar()
    )
    subcategory_count = (
        db.session.query(func.count(model.id))
        .filter(model.parent_category_id == node.id, model.is_deleted == False)  # noqa: E712
        .scalar()
    )
    return {
        **node.to_dict(),
        "owner_type": owner_type,
        "entity_count": entity_count,
        "subcategory_count": subcategory_count,
    }


def create_category(
    owner_type: str,
    name: str,
    parent_id: str | None = None,
    fields: dict | None = None,
    actor: str | None = None,
):
    """
    Create a node under parent_id (or as a root).

    Raises:
        CrossTypeViolationError: owner type has no tree, or parent is from another tree
        NotFoundError: parent missing or soft-deleted
        CycleDetectedError: parent's own ancestor chain is broken, or the new
            node would exceed CATEGORY_MAX_DEPTH
    """
    _, model = _tree(owner_type)
    if name is None or not str(name).strip():
        raise ValidationError("name is required")

    with atomic():
        if parent_id is not None:
            parent = require_category(model, parent_id)
            _check_depth(_ancestor_ids(model, parent.id), 1)

        node = model(parent_category_id=parent_id)
        _apply_fields(node, fields or {})
        node.name = str(name).strip()
        stamp_created(node, actor)
    return node


def get_category(owner_type: str, category_id: str, include_deleted: bool = False):
    _, model = _tree(owner_type)
    return require_category(model, category_id, allow_deleted=include_deleted)


def update_category(
    owner_type: str,
    category_id: str,
    patch: dict,
    expected_version: int | None = None,
    actor: str | None = None,
):
    """Presentation fields only; structure changes go through move_category."""
    _, model = _tree(owner_type)
    if "parent_category_id" in patch:
        raise ValidationError("parent_category_id cannot be patched; move the category instead")

    with atomic():
        node = require_category(model, category_id)
        check_row_version(node, expected_version)
        _apply_fields(node, patch)
        stamp_modified(node, actor)
    return node


def move_category(
    owner_type: str,
    category_id: str,
    new_parent_id: str | None,
    expected_version: int | None = None,
    actor: str | None = None,
):
    """
    Re-parent a node (None makes it a root).

    Raises:
        CycleDetectedError: node would become its own ancestor, or its deepest
            descendant would exceed CATEGORY_MAX_DEPTH
        CrossTypeViolationError / NotFoundError: bad node or parent
        ConcurrencyConflictError
    """
    _, model = _tree(owner_type)

    with atomic():
        node = require_category(model, category_id)
        check_row_version(node, expected_version)

        if new_parent_id is not None:
            parent = require_category(model, new_parent_id)
            chain = _ancestor_ids(model, parent.id)
            if node.id in chain:
                raise CycleDetectedError(
                    f"Moving '{node.name}' under '{parent.name}' would create a cycle"
                )
            _check_depth(chain, _subtree_height(model, node))

        old_parent_id = node.parent_category_id
        node.parent_category_id = new_parent_id
        stamp_modified(node, actor)

    current_app.logger.info(
        "Moved %s category %s from %s to %s", owner_type, category_id, old_parent_id, new_parent_id
    )
    return node


def delete_category(
    owner_type: str,
    category_id: str,
    mode: str = "restrict",
    expected_version: int | None = None,
    actor: str | None = None,
) -> dict:
    """
    Soft-delete a node according to mode.

    Returns:
        {"deleted": [ids], "reparented": [ids]}
    """
    bundle, model = _tree(owner_type)
    mode = enforce_delete_mode(mode)

    with atomic():
        node = require_category(model, category_id)
        check_row_version(node, expected_version)
        children = _children(model, node.id).all()
        when = utcnow()

        deleted: list[str] = []
        reparented: list[str] = []

        if mode == "restrict":
            if children:
                raise HasChildrenError(
                    f"Category '{node.name}' has {len(children)} live subcategories"
                )
            removed = [node]
        elif mode == "cascade":
            removed = subtree(model, node)
        else:
            for child in children:
                child.parent_category_id = node.parent_category_id
                stamp_modified(child, actor, when)
                reparented.append(child.id)
            removed = [node]

        # Children first so a parent is never deleted above a live child
        for victim in reversed(removed):
            _retire(bundle, victim, when, actor)
            deleted.append(victim.id)

    current_app.logger.info(
        "Deleted %s category %s (mode=%s, removed=%d, reparented=%d)",
        owner_type, category_id, mode, len(deleted), len(reparented),
    )
    return {"deleted": deleted, "reparented": reparented}


def list_categories(
    owner_type: str,
    parent_id: str | None = None,
    include_deleted: bool = False,
) -> list:
    """
    Direct children of parent_id (roots when None), busiest branches first:
    ordered by live subcategory count desc, then name.
    """
    _, model = _tree(owner_type)
    child = aliased(model)
    sub_count = (
        db.session.query(func.count(child.id))
        .filter(child.parent_category_id == model.id, child.is_deleted == False)  # noqa: E712
        .correlate(model)
        .scalar_subquery()
    )

    q = live(db.session.query(model), model, include_deleted)
    if parent_id is None:
        q = q.filter(model.parent_category_id.is_(None))
    else:
        parent = require_category(model, parent_id, allow_deleted=include_deleted)
        q = q.filter(model.parent_category_id == parent.id)
    return q.order_by(sub_count.desc(), model.name.asc(), model.id.asc()).all()


def list_leaf_categories(owner_type: str, include_deleted: bool = False) -> list:
    """
    Nodes without children. Live nodes and live children by default; with
    include_deleted, deleted nodes are listed and deleted children count.
    """
    _, model = _tree(owner_type)
    child = aliased(model)
    conditions = [child.parent_category_id == model.id]
    if not include_deleted:
        conditions.append(child.is_deleted == False)  # noqa: E712
    has_children = exists().where(*conditions)
    return (
        live(db.session.query(model), model, include_deleted)
        .filter(~has_children)
        .order_by(model.name.asc(), model.id.asc())
        .all()
    )


def search_categories(
    owner_type: str,
    term: str | None = None,
    page: int | None = 1,
    per_page: int | None = None,
    include_deleted: bool = False,
) -> dict:
    """Case-insensitive match on name or description, paginated."""
    _, model = _tree(owner_type)
    q = live(db.session.query(model), model, include_deleted)
    if term:
        pattern = f"%{term.strip()}%"
        q = q.filter(or_(model.name.ilike(pattern), model.description.ilike(pattern)))
    q = q.order_by(model.name.asc(), model.id.asc())
    return paginate(q, page, per_page, serializer=lambda node: category_to_dict(owner_type, node))


def category_path(owner_type: str, category_id: str) -> list:
    """Breadcrumb from the root down to category_id."""
    _, model = _tree(owner_type)
    node = require_category(model, category_id)
    ids = _ancestor_ids(model, node.id)
    return [db.session.get(model, i) for i in reversed(ids)]
