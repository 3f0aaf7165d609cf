# Overview: Flask API routes for owning entities; parses input and returns JSON responses.

# backend/schoolhub/routes/owners.py
"""
Generic owning-entity routes, addressed by owner type tag:

    /api/owners/product
    /api/owners/learner/<id>

Writes require an actor id header (@require_actor). Updates and deletes
honor the caller's row_version (If-Match header or "row_version" in body);
a stale value answers 409.
"""
from flask import Blueprint, request, current_app

from ..services import owner_service
from ..errors import DomainError, error_body
from ..validation import ValidationError, validate_payload, policy_for
from ..decorators import require_actor, parse_include_deleted, parse_expected_version

owners_bp = Blueprint("owners", __name__, url_prefix="/api/owners")


@owners_bp.get("/<owner_type>")
def list_owners_route(owner_type: str):
    """
    Query params:
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional)
    - include_deleted: bool (optional)
    """
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)

    try:
        return owner_service.list_owners(
            owner_type,
            include_deleted=parse_include_deleted(),
            page=page,
            per_page=per_page,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return error_body(e)


@owners_bp.post("/<owner_type>")
@require_actor
def create_owner_route(owner_type: str):
    payload = request.get_json(silent=True) or {}

    try:
        model = owner_service.get_bundle(owner_type).owner
        patch = validate_payload(model=model, payload=payload, policy=policy_for(model), partial=False)
        owner = owner_service.create_owner(owner_type, patch)
        return {"owner": owner.to_dict()}, 201
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to create owner")
        return {"error": "Internal server error"}, 500


@owners_bp.get("/<owner_type>/<owner_id>")
def get_owner_route(owner_type: str, owner_id: str):
    try:
        owner = owner_service.get_owner(owner_type, owner_id, include_deleted=parse_include_deleted())
        return {"owner": owner.to_dict()}
    except DomainError as e:
        return error_body(e)


@owners_bp.patch("/<owner_type>/<owner_id>")
@require_actor
def update_owner_route(owner_type: str, owner_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        expected = parse_expected_version(payload)
        payload.pop("row_version", None)
        model = owner_service.get_bundle(owner_type).owner
        patch = validate_payload(model=model, payload=payload, policy=policy_for(model), partial=True)
        owner = owner_service.update_owner(owner_type, owner_id, patch, expected_version=expected)
        return {"owner": owner.to_dict()}
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to update owner")
        return {"error": "Internal server error"}, 500


@owners_bp.delete("/<owner_type>/<owner_id>")
@require_actor
def delete_owner_route(owner_type: str, owner_id: str):
    """Soft delete; sub-records, attachments and memberships follow."""
    try:
        owner = owner_service.delete_owner(
            owner_type, owner_id, expected_version=parse_expected_version()
        )
        return {"owner": owner.to_dict()}
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to delete owner")
        return {"error": "Internal server error"}, 500


@owners_bp.post("/<owner_type>/<owner_id>/restore")
@require_actor
def restore_owner_route(owner_type: str, owner_id: str):
    try:
        owner = owner_service.restore_owner(owner_type, owner_id)
        return {"owner": owner.to_dict()}
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to restore owner")
        return {"error": "Internal server error"}, 500
