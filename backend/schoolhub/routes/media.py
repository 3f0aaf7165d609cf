# Overview: Flask API routes for shared media and owner attachments; parses input and returns JSON responses.

# backend/schoolhub/routes/media.py
"""
Shared media (kind: document, image, video):
- GET    /api/media/<kind>                 ?page&per_page&include_deleted&image_type
- POST   /api/media/<kind>
- GET    /api/media/<kind>/orphans         rows with no live attachment ?include_deleted
- GET    /api/media/<kind>/<media_id>
- PATCH  /api/media/<kind>/<media_id>
- DELETE /api/media/<kind>/<media_id>      409 while still attached

Attachments:
- GET    /api/owners/<type>/<id>/media/<kind>          ?selector
- POST   /api/owners/<type>/<id>/media/<kind>          {"media_id", "order"?, "selector"?}
- PUT    /api/owners/<type>/<id>/media/<kind>/order    {"ids": [...]} (complete list)
- PATCH  /api/owners/<type>/<id>/media/<kind>/<attachment_id>
- DELETE /api/owners/<type>/<id>/media/<kind>/<attachment_id>
"""
from flask import Blueprint, request, current_app

from ..services import media_service
from ..services.owner_service import get_bundle
from ..errors import DomainError, error_body
from ..validation import (
    ValidationError,
    validate_payload,
    policy_for,
    enforce_rules_media,
    enforce_rules_attachment,
)
from ..decorators import require_actor, parse_include_deleted, parse_expected_version

media_bp = Blueprint("media", __name__, url_prefix="/api")


# -----------------------------
# Shared media rows
# -----------------------------

@media_bp.get("/media/<kind>")
def list_media_route(kind: str):
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)

    try:
        return media_service.list_media(
            kind,
            include_deleted=parse_include_deleted(),
            image_type=request.args.get("image_type"),
            page=page,
            per_page=per_page,
        )
    except DomainError as e:
        return error_body(e)


@media_bp.post("/media/<kind>")
@require_actor
def create_media_route(kind: str):
    payload = request.get_json(silent=True) or {}

    try:
        model = media_service.media_model(kind)
        patch = validate_payload(model=model, payload=payload, policy=policy_for(model), partial=False)
        enforce_rules_media(kind, patch)
        media = media_service.create_media(kind, patch)
        return {"media": media.to_dict()}, 201
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to create media")
        return {"error": "Internal server error"}, 500


@media_bp.get("/media/<kind>/orphans")
def orphaned_media_route(kind: str):
    try:
        rows = media_service.list_unreferenced_media(kind, include_deleted=parse_include_deleted())
        return {"items": [m.to_dict() for m in rows], "count": len(rows)}
    except DomainError as e:
        return error_body(e)


@media_bp.get("/media/<kind>/<media_id>")
def get_media_route(kind: str, media_id: str):
    try:
        media = media_service.get_media(kind, media_id, include_deleted=parse_include_deleted())
        return {"media": media.to_dict()}
    except DomainError as e:
        return error_body(e)


@media_bp.patch("/media/<kind>/<media_id>")
@require_actor
def update_media_route(kind: str, media_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        expected = parse_expected_version(payload)
        payload.pop("row_version", None)
        model = media_service.media_model(kind)
        patch = validate_payload(model=model, payload=payload, policy=policy_for(model), partial=True)
        enforce_rules_media(kind, patch)
        media = media_service.update_media(kind, media_id, patch, expected_version=expected)
        return {"media": media.to_dict()}
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to update media")
        return {"error": "Internal server error"}, 500


@media_bp.delete("/media/<kind>/<media_id>")
@require_actor
def delete_media_route(kind: str, media_id: str):
    try:
        media = media_service.delete_media(kind, media_id, expected_version=parse_expected_version())
        return {"media": media.to_dict()}
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to delete media")
        return {"error": "Internal server error"}, 500


# -----------------------------
# Attachments
# -----------------------------

@media_bp.get("/owners/<owner_type>/<owner_id>/media/<kind>")
def list_attachments_route(owner_type: str, owner_id: str, kind: str):
    try:
        rows = media_service.list_attachments(
            owner_type, kind, owner_id,
            selector=request.args.get("selector"),
            include_deleted=parse_include_deleted(),
        )
        return {"items": [r.to_dict() for r in rows], "count": len(rows)}
    except DomainError as e:
        return error_body(e)


@media_bp.post("/owners/<owner_type>/<owner_id>/media/<kind>")
@require_actor
def attach_media_route(owner_type: str, owner_id: str, kind: str):
    payload = request.get_json(silent=True) or {}
    media_id = payload.pop("media_id", None)

    try:
        if not media_id:
            raise ValidationError("media_id is required")
        model = get_bundle(owner_type).attachment_model(kind)
        patch = validate_payload(model=model, payload=payload, policy=policy_for(model), partial=True)
        enforce_rules_attachment(patch)
        row = media_service.attach_media(
            owner_type, kind, owner_id, str(media_id),
            order=patch.get("order"),
            selector=patch.get("selector"),
        )
        return {"attachment": row.to_dict()}, 201
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to attach media")
        return {"error": "Internal server error"}, 500


@media_bp.put("/owners/<owner_type>/<owner_id>/media/<kind>/order")
@require_actor
def reorder_attachments_route(owner_type: str, owner_id: str, kind: str):
    payload = request.get_json(silent=True) or {}
    ids = payload.get("ids")

    try:
        if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
            raise ValidationError("ids must be a list of attachment ids")
        rows = media_service.reorder_attachments(owner_type, kind, owner_id, ids)
        return {"items": [r.to_dict() for r in rows], "count": len(rows)}
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to reorder attachments")
        return {"error": "Internal server error"}, 500


@media_bp.patch("/owners/<owner_type>/<owner_id>/media/<kind>/<attachment_id>")
@require_actor
def update_attachment_route(owner_type: str, owner_id: str, kind: str, attachment_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        expected = parse_expected_version(payload)
        payload.pop("row_version", None)
        model = get_bundle(owner_type).attachment_model(kind)
        patch = validate_payload(model=model, payload=payload, policy=policy_for(model), partial=True)
        enforce_rules_attachment(patch)
        if media_service.get_attachment(owner_type, kind, attachment_id).entity_id != owner_id:
            return {"error": f"{kind} attachment '{attachment_id}' not found"}, 404
        row = media_service.update_attachment(
            owner_type, kind, attachment_id, patch, expected_version=expected
        )
        return {"attachment": row.to_dict()}
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to update attachment")
        return {"error": "Internal server error"}, 500


@media_bp.delete("/owners/<owner_type>/<owner_id>/media/<kind>/<attachment_id>")
@require_actor
def detach_media_route(owner_type: str, owner_id: str, kind: str, attachment_id: str):
    try:
        if media_service.get_attachment(owner_type, kind, attachment_id).entity_id != owner_id:
            return {"error": f"{kind} attachment '{attachment_id}' not found"}, 404
        row = media_service.detach_media(
            owner_type, kind, attachment_id, expected_version=parse_expected_version()
        )
        return {"attachment": row.to_dict()}
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to detach media")
        return {"error": "Internal server error"}, 500
