# Overview: Read-only integrity audit across every instantiated owner type.

"""
Integrity audit

Scans every registered bundle and reports rows that break the invariants the
services maintain. Nothing is repaired here; the report is meant for the
`flask integrity audit` command and for tests.

Checks:
- category_cycle: following parents revisits a node or runs past CATEGORY_MAX_DEPTH
- dangling_parent: parent_category_id points at no row
- orphaned_category: live category under a soft-deleted parent
- dead_media: live attachment whose media row is missing or soft-deleted
- live_dependent_of_deleted_owner: sub-record/attachment/membership left live
  after its owner was soft-deleted
- multiple_defaults: more than one live default per (owner, kind)
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import OWNER_TYPES


def _issue(check: str, table: str, row_id: str, detail: str) -> dict:
    return {"check": check, "table": table, "id": row_id, "detail": detail}


def audit_category_tree(bundle) -> list[dict]:
    model = bundle.category
    table = model.__tablename__
    rows = db.session.query(model.id, model.parent_category_id, model.is_deleted).all()
    parent_of = {r.id: r.parent_category_id for r in rows}
    deleted = {r.id for r in rows if r.is_deleted}
    max_depth = current_app.config.get("CATEGORY_MAX_DEPTH", 64)

    issues = []
    for row in rows:
        if row.parent_category_id is not None and row.parent_category_id not in parent_of:
            issues.append(_issue(
                "dangling_parent", table, row.id,
                f"parent {row.parent_category_id} does not exist",
            ))
            continue

        if not row.is_deleted and row.parent_category_id in deleted:
            issues.append(_issue(
                "orphaned_category", table, row.id,
                f"parent {row.parent_category_id} is deleted",
            ))

        seen = {row.id}
        current = row.parent_category_id
        steps = 0
        while current is not None and current in parent_of:
            steps += 1
            if current in seen or steps > max_depth:
                issues.append(_issue(
                    "category_cycle", table, row.id,
                    f"ancestor walk did not reach a root within {max_depth} steps",
                ))
                break
            seen.add(current)
            current = parent_of[current]
    return issues


def audit_attachments(bundle) -> list[dict]:
    issues = []
    for kind, model in sorted(bundle.attachments.items()):
        media_model = model.MEDIA_MODEL
        rows = (
            db.session.query(model.id, model.media_id, media_model.is_deleted)
            .outerjoin(media_model, model.media_id == media_model.id)
            .filter(model.is_deleted == False)  # noqa: E712
            .all()
        )
        for row in rows:
            if row.is_deleted is None:
                detail = f"{kind} {row.media_id} does not exist"
            elif row.is_deleted:
                detail = f"{kind} {row.media_id} is deleted"
            else:
                continue
            issues.append(_issue("dead_media", model.__tablename__, row.id, detail))
    return issues


def audit_dependents(bundle) -> list[dict]:
    owner = bundle.owner
    issues = []
    for model in bundle.dependents():
        rows = (
            db.session.query(model.id, model.entity_id)
            .join(owner, model.entity_id == owner.id)
            .filter(model.is_deleted == False, owner.is_deleted == True)  # noqa: E712
            .all()
        )
        for row in rows:
            issues.append(_issue(
                "live_dependent_of_deleted_owner", model.__tablename__, row.id,
                f"owner {row.entity_id} is deleted",
            ))
    return issues


def audit_defaults(bundle) -> list[dict]:
    issues = []
    for kind, model in sorted(bundle.sub_records.items()):
        rows = (
            db.session.query(model.entity_id, func.count(model.id))
            .filter(model.is_deleted == False, model.is_default == True)  # noqa: E712
            .group_by(model.entity_id)
            .having(func.count(model.id) > 1)
            .all()
        )
        for entity_id, count in rows:
            issues.append(_issue(
                "multiple_defaults", model.__tablename__, entity_id,
                f"{count} live default {kind} records",
            ))
    return issues


def run_integrity_audit(owner_types: list[str] | None = None) -> dict:
    """
    Run every check over the selected (default: all) owner types.

    Returns:
        {"ok": bool, "checked": [owner types], "issues": [...]}
    """
    tags = sorted(owner_types or OWNER_TYPES)
    issues: list[dict] = []
    for tag in tags:
        bundle = OWNER_TYPES[tag]
        if bundle.category is not None:
            issues.extend(audit_category_tree(bundle))
        issues.extend(audit_attachments(bundle))
        issues.extend(audit_dependents(bundle))
        issues.extend(audit_defaults(bundle))

    if issues:
        current_app.logger.warning("Integrity audit found %d issue(s)", len(issues))
    return {"ok": not issues, "checked": tags, "issues": issues}
