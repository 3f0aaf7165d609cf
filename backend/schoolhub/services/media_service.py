# Overview: Service-layer operations for shared media rows and per-owner attachment joins.

"""
Media Service

Two layers:
1. Shared media rows (documents, images, videos): file metadata only, never
   owned by anyone. Raw bytes are stored elsewhere.
2. Attachment joins (product_images, learner_documents, ...): link one owner
   to one media row with a display order and an optional free-text selector
   (e.g. "cover", "banner", "gallery").

RULES:
- One live attachment per (owner, media) pair.
- Omitted order appends after the current last attachment.
- Reorder takes the COMPLETE list of the owner's live attachment ids for one
  kind; anything else is rejected and ordering stays as it was.
- Detach soft-deletes the join row; the media row is untouched.
- A media row cannot be deleted while any live attachment in any owner
  type's table references it.
- Read paths skip attachments whose media row is soft-deleted.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import (
    NotFoundError,
    DuplicateAttachmentError,
    IncompleteOrderSetError,
    MediaInUseError,
)
from ..models import MEDIA_MODELS, OWNER_TYPES
from ..validation import ValidationError
from .audit_service import stamp_created, stamp_modified, mark_deleted
from .concurrency import atomic, check_row_version
from .owner_service import get_bundle, require_owner, touch_owner
from .query_service import live, paginate


def media_model(kind: str):
    model = MEDIA_MODELS.get(kind)
    if model is None:
        raise NotFoundError(f"Unknown media kind '{kind}'")
    return model


def _attachment_models(kind: str) -> list:
    """Every instantiated attachment table of one media kind."""
    return [
        bundle.attachments[kind]
        for _, bundle in sorted(OWNER_TYPES.items())
        if kind in bundle.attachments
    ]


def _live_attachments(model, owner_id: str):
    return (
        db.session.query(model)
        .filter(model.entity_id == owner_id, model.is_deleted == False)  # noqa: E712
        .order_by(model.order.asc(), model.created_on.asc(), model.id.asc())
    )


def _require_attachment(model, attachment_id: str):
    row = db.session.get(model, attachment_id)
    if row is None or row.is_deleted:
        raise NotFoundError(f"{model.MEDIA_KIND} attachment '{attachment_id}' not found")
    return row


def _apply_fields(entity, fields: dict) -> None:
    for k, v in fields.items():
        if k in entity.MUTABLE_FIELDS:
            setattr(entity, k, v)


# -----------------------------
# Shared media rows
# -----------------------------

def create_media(kind: str, metadata: dict, actor: str | None = None):
    """Register file metadata for an already-stored file."""
    model = media_model(kind)
    missing = [f for f in sorted(model.REQUIRED_FIELDS) if metadata.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    with atomic():
        media = model()
        _apply_fields(media, metadata)
        stamp_created(media, actor)
    return media


def get_media(kind: str, media_id: str, include_deleted: bool = False):
    model = media_model(kind)
    media = db.session.get(model, media_id)
    if media is None or (media.is_deleted and not include_deleted):
        raise NotFoundError(f"{kind} '{media_id}' not found")
    return media


def list_media(
    kind: str,
    include_deleted: bool = False,
    image_type: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    model = media_model(kind)
    q = live(db.session.query(model), model, include_deleted)
    if image_type and kind == "image":
        q = q.filter(model.image_type == image_type.upper())
    q = q.order_by(model.created_on.desc(), model.id.asc())
    return paginate(q, page, per_page)


def update_media(
    kind: str,
    media_id: str,
    patch: dict,
    expected_version: int | None = None,
    actor: str | None = None,
):
    model = media_model(kind)
    with atomic():
        media = db.session.get(model, media_id)
        if media is None or media.is_deleted:
            raise NotFoundError(f"{kind} '{media_id}' not found")
        check_row_version(media, expected_version)
        _apply_fields(media, patch)
        stamp_modified(media, actor)
    return media


def delete_media(
    kind: str,
    media_id: str,
    expected_version: int | None = None,
    actor: str | None = None,
):
    """
    Soft-delete a shared media row.

    Raises:
        NotFoundError: unknown or already deleted
        MediaInUseError: a live attachment still references it
    """
    model = media_model(kind)
    with atomic():
        media = db.session.get(model, media_id)
        if media is None or media.is_deleted:
            raise NotFoundError(f"{kind} '{media_id}' not found")
        check_row_version(media, expected_version)

        in_use = 0
        for att in _attachment_models(kind):
            in_use += (
                db.session.query(func.count(att.id))
                .filter(att.media_id == media.id, att.is_deleted == False)  # noqa: E712
                .scalar()
            )
        if in_use:
            raise MediaInUseError(
                f"{kind} '{media_id}' is referenced by {in_use} live attachment(s)"
            )

        mark_deleted(media, actor)
    return media


def list_unreferenced_media(kind: str, include_deleted: bool = False) -> list:
    """
    Media rows no live attachment points at (input for external GC). Live
    rows only unless include_deleted.
    """
    model = media_model(kind)
    referenced: set[str] = set()
    for att in _attachment_models(kind):
        rows = (
            db.session.query(att.media_id)
            .filter(att.is_deleted == False)  # noqa: E712
            .distinct()
            .all()
        )
        referenced.update(r[0] for r in rows)

    q = live(db.session.query(model), model, include_deleted)
    if referenced:
        q = q.filter(~model.id.in_(sorted(referenced)))
    return q.order_by(model.created_on.asc(), model.id.asc()).all()


# -----------------------------
# Attachments
# -----------------------------

def attach_media(
    owner_type: str,
    kind: str,
    owner_id: str,
    media_id: str,
    order: int | None = None,
    selector: str | None = None,
    actor: str | None = None,
):
    """
    Link a shared media row to a live owner.

    Raises:
        CrossTypeViolationError: owner type does not accept this media kind
        OwnerNotFoundError / OwnerDeletedError
        NotFoundError: media missing or soft-deleted
        DuplicateAttachmentError: pair already attached
    """
    bundle = get_bundle(owner_type)
    model = bundle.attachment_model(kind)

    with atomic():
        owner = require_owner(bundle, owner_id)

        media = db.session.get(model.MEDIA_MODEL, media_id)
        if media is None or media.is_deleted:
            raise NotFoundError(f"{kind} '{media_id}' not found")

        duplicate = (
            _live_attachments(model, owner.id).filter(model.media_id == media.id).first()
        )
        if duplicate is not None:
            raise DuplicateAttachmentError(
                f"{kind} '{media_id}' is already attached to {owner_type} '{owner_id}'"
            )

        if order is None:
            last = (
                db.session.query(func.max(model.order))
                .filter(model.entity_id == owner.id, model.is_deleted == False)  # noqa: E712
                .scalar()
            )
            order = 0 if last is None else last + 1

        row = model(entity_id=owner.id, media_id=media.id, order=order, selector=selector)
        stamp_created(row, actor)
        touch_owner(owner, actor)
    return row


def reorder_attachments(
    owner_type: str,
    kind: str,
    owner_id: str,
    ordered_ids: list[str],
    actor: str | None = None,
) -> list:
    """
    Rewrite display order to each attachment's index in ordered_ids.

    Raises:
        IncompleteOrderSetError: omissions, duplicates or foreign ids
    """
    bundle = get_bundle(owner_type)
    model = bundle.attachment_model(kind)

    with atomic():
        owner = require_owner(bundle, owner_id)
        rows = {row.id: row for row in _live_attachments(model, owner.id).all()}

        if len(ordered_ids) != len(set(ordered_ids)):
            raise IncompleteOrderSetError("Order list contains duplicate ids")
        if set(ordered_ids) != set(rows):
            missing = sorted(set(rows) - set(ordered_ids))
            foreign = sorted(set(ordered_ids) - set(rows))
            raise IncompleteOrderSetError(
                f"Order list must name every live {kind} attachment exactly once "
                f"(missing={missing}, unknown={foreign})"
            )

        for index, attachment_id in enumerate(ordered_ids):
            row = rows[attachment_id]
            if row.order != index:
                row.order = index
                stamp_modified(row, actor)

    current_app.logger.info(
        "Reordered %d %s attachments for %s %s", len(ordered_ids), kind, owner_type, owner_id
    )
    return [rows[i] for i in ordered_ids]


def get_attachment(owner_type: str, kind: str, attachment_id: str, include_deleted: bool = False):
    model = get_bundle(owner_type).attachment_model(kind)
    row = db.session.get(model, attachment_id)
    if row is None or (row.is_deleted and not include_deleted):
        raise NotFoundError(f"{kind} attachment '{attachment_id}' not found")
    return row


def update_attachment(
    owner_type: str,
    kind: str,
    attachment_id: str,
    patch: dict,
    expected_version: int | None = None,
    actor: str | None = None,
):
    """Change order and/or selector of one attachment."""
    bundle = get_bundle(owner_type)
    model = bundle.attachment_model(kind)

    with atomic():
        row = _require_attachment(model, attachment_id)
        require_owner(bundle, row.entity_id)
        check_row_version(row, expected_version)
        _apply_fields(row, patch)
        stamp_modified(row, actor)
    return row


def detach_media(
    owner_type: str,
    kind: str,
    attachment_id: str,
    expected_version: int | None = None,
    actor: str | None = None,
):
    """Soft-delete the join row only."""
    bundle = get_bundle(owner_type)
    model = bundle.attachment_model(kind)

    with atomic():
        row = _require_attachment(model, attachment_id)
        check_row_version(row, expected_version)
        mark_deleted(row, actor)
    return row


def list_attachments(
    owner_type: str,
    kind: str,
    owner_id: str,
    selector: str | None = None,
    include_deleted: bool = False,
) -> list:
    """Attachments in display order, media rows eagerly loaded."""
    bundle = get_bundle(owner_type)
    model = bundle.attachment_model(kind)
    media_cls = model.MEDIA_MODEL
    require_owner(bundle, owner_id, allow_deleted=include_deleted)

    q = (
        db.session.query(model)
        .join(media_cls, model.media_id == media_cls.id)
        .filter(model.entity_id == owner_id)
    )
    if not include_deleted:
        q = q.filter(
            model.is_deleted == False,  # noqa: E712
            media_cls.is_deleted == False,  # noqa: E712
        )
    if selector is not None:
        q = q.filter(model.selector == selector)
    return q.order_by(model.order.asc(), model.created_on.asc(), model.id.asc()).all()
