# Overview: Service-layer helpers for audit stamping and soft-delete state on any audited row.

"""
Audit stamping for AuditedMixin rows.

ACTOR: every mutating call records who did it. The actor id comes from the
explicit `actor` argument, else from g.actor_id (set by @require_actor for
HTTP requests). Identity is not verified here; that is the caller's job.

None of these helpers commit. They are called inside services.concurrency.atomic().
"""

from __future__ import annotations

from datetime import datetime

from flask import g, has_app_context

from ..extensions import db
from ..time_utils import utcnow


def current_actor(actor: str | None = None) -> str | None:
    """Explicit actor wins; otherwise fall back to the request's g.actor_id."""
    if actor:
        return actor
    if has_app_context():
        return getattr(g, "actor_id", None)
    return None


def stamp_created(entity, actor: str | None = None):
    """Stamp creator fields and add the row to the session."""
    entity.created_by = current_actor(actor)
    entity.created_on = utcnow()
    entity.is_deleted = False
    entity.deleted_on = None
    db.session.add(entity)
    return entity


def stamp_modified(entity, actor: str | None = None, when: datetime | None = None):
    """
    Stamp modifier fields.

    Also used to "touch" an owner row so its row_version advances, which
    serializes concurrent writers that guard on that owner.
    """
    entity.last_modified_by = current_actor(actor)
    entity.last_modified_on = when or utcnow()
    return entity


def mark_deleted(entity, actor: str | None = None, when: datetime | None = None):
    """Soft delete: flag + timestamp. Already-deleted rows are left alone."""
    if entity.is_deleted:
        return entity
    when = when or utcnow()
    entity.is_deleted = True
    entity.deleted_on = when
    stamp_modified(entity, actor, when)
    return entity


def mark_restored(entity):
    """Undo a soft delete. Restores are not audited separately."""
    entity.is_deleted = False
    entity.deleted_on = None
    return entity
