# Overview: Flask API routes for category trees and memberships; parses input and returns JSON responses.

# backend/schoolhub/routes/categories.py
"""
Category trees are per owner type; <owner_type> is the type whose entities
get categorized (product, blog_post, ...).

Tree:
- GET    /api/categories/<owner_type>                    ?parent_id (roots when omitted)
- GET    /api/categories/<owner_type>/leaves             ?include_deleted
- GET    /api/categories/<owner_type>/search             ?q&page&per_page&include_deleted
- POST   /api/categories/<owner_type>                    {"name", "parent_category_id"?, ...}
- GET    /api/categories/<owner_type>/<id>
- GET    /api/categories/<owner_type>/<id>/path
- PATCH  /api/categories/<owner_type>/<id>
- POST   /api/categories/<owner_type>/<id>/move          {"parent_category_id": id | null}
- DELETE /api/categories/<owner_type>/<id>               ?mode=restrict|cascade|reparent_children
- GET    /api/categories/<owner_type>/<id>/members       ?include_subcategories&include_deleted

Memberships:
- GET    /api/owners/<owner_type>/<owner_id>/categories  ?include_deleted
- POST   /api/owners/<owner_type>/<owner_id>/categories/<category_id>
- DELETE /api/owners/<owner_type>/<owner_id>/categories/<category_id>

Category images go through the media routes with owner type
"<owner_type>_category".
"""
from flask import Blueprint, request, current_app

from ..services import category_service, membership_service
from ..services.owner_service import get_bundle
from ..errors import DomainError, error_body
from ..validation import ValidationError, validate_payload, policy_for
from ..decorators import require_actor, parse_include_deleted, parse_expected_version

categories_bp = Blueprint("categories", __name__, url_prefix="/api")


def _truthy(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in ("1", "true", "yes")


# -----------------------------
# Tree
# -----------------------------

@categories_bp.get("/categories/<owner_type>")
def list_categories_route(owner_type: str):
    try:
        nodes = category_service.list_categories(
            owner_type,
            parent_id=request.args.get("parent_id") or None,
            include_deleted=parse_include_deleted(),
        )
        items = [category_service.category_to_dict(owner_type, n) for n in nodes]
        return {"items": items, "count": len(items)}
    except DomainError as e:
        return error_body(e)


@categories_bp.get("/categories/<owner_type>/leaves")
def list_leaf_categories_route(owner_type: str):
    try:
        nodes = category_service.list_leaf_categories(
            owner_type, include_deleted=parse_include_deleted()
        )
        items = [category_service.category_to_dict(owner_type, n) for n in nodes]
        return {"items": items, "count": len(items)}
    except DomainError as e:
        return error_body(e)


@categories_bp.get("/categories/<owner_type>/search")
def search_categories_route(owner_type: str):
    page = request.args.get("page", 1, type=int)
    per_page = request.args.get("per_page", type=int)

    try:
        return category_service.search_categories(
            owner_type,
            term=request.args.get("q"),
            page=page,
            per_page=per_page,
            include_deleted=parse_include_deleted(),
        )
    except DomainError as e:
        return error_body(e)


@categories_bp.post("/categories/<owner_type>")
@require_actor
def create_category_route(owner_type: str):
    payload = request.get_json(silent=True) or {}
    parent_id = payload.pop("parent_category_id", None)

    try:
        model = get_bundle(owner_type).category_model()
        patch = validate_payload(model=model, payload=payload, policy=policy_for(model), partial=False)
        name = patch.pop("name")
        node = category_service.create_category(owner_type, name, parent_id=parent_id, fields=patch)
        return {"category": category_service.category_to_dict(owner_type, node)}, 201
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to create category")
        return {"error": "Internal server error"}, 500


@categories_bp.get("/categories/<owner_type>/<category_id>")
def get_category_route(owner_type: str, category_id: str):
    try:
        node = category_service.get_category(
            owner_type, category_id, include_deleted=parse_include_deleted()
        )
        return {"category": category_service.category_to_dict(owner_type, node)}
    except DomainError as e:
        return error_body(e)


@categories_bp.get("/categories/<owner_type>/<category_id>/path")
def category_path_route(owner_type: str, category_id: str):
    try:
        nodes = category_service.category_path(owner_type, category_id)
        return {"items": [n.to_dict() for n in nodes], "count": len(nodes)}
    except DomainError as e:
        return error_body(e)


@categories_bp.patch("/categories/<owner_type>/<category_id>")
@require_actor
def update_category_route(owner_type: str, category_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        expected = parse_expected_version(payload)
        payload.pop("row_version", None)
        if "parent_category_id" in payload:
            raise ValidationError("parent_category_id cannot be patched; move the category instead")
        model = get_bundle(owner_type).category_model()
        patch = validate_payload(model=model, payload=payload, policy=policy_for(model), partial=True)
        node = category_service.update_category(
            owner_type, category_id, patch, expected_version=expected
        )
        return {"category": category_service.category_to_dict(owner_type, node)}
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to update category")
        return {"error": "Internal server error"}, 500


@categories_bp.post("/categories/<owner_type>/<category_id>/move")
@require_actor
def move_category_route(owner_type: str, category_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        if "parent_category_id" not in payload:
            raise ValidationError("parent_category_id is required (null for root)")
        node = category_service.move_category(
            owner_type,
            category_id,
            payload["parent_category_id"],
            expected_version=parse_expected_version(payload),
        )
        return {"category": category_service.category_to_dict(owner_type, node)}
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to move category")
        return {"error": "Internal server error"}, 500


@categories_bp.delete("/categories/<owner_type>/<category_id>")
@require_actor
def delete_category_route(owner_type: str, category_id: str):
    try:
        result = category_service.delete_category(
            owner_type,
            category_id,
            mode=request.args.get("mode", "restrict"),
            expected_version=parse_expected_version(),
        )
        return result
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to delete category")
        return {"error": "Internal server error"}, 500


@categories_bp.get("/categories/<owner_type>/<category_id>/members")
def list_members_route(owner_type: str, category_id: str):
    try:
        members = membership_service.list_members(
            owner_type,
            category_id,
            include_subcategories=_truthy("include_subcategories"),
            include_deleted=parse_include_deleted(),
        )
        return {"items": [m.to_dict() for m in members], "count": len(members)}
    except DomainError as e:
        return error_body(e)


# -----------------------------
# Memberships
# -----------------------------

@categories_bp.get("/owners/<owner_type>/<owner_id>/categories")
def list_owner_categories_route(owner_type: str, owner_id: str):
    try:
        nodes = membership_service.list_categories_for_owner(
            owner_type, owner_id, include_deleted=parse_include_deleted()
        )
        return {"items": [n.to_dict() for n in nodes], "count": len(nodes)}
    except DomainError as e:
        return error_body(e)


@categories_bp.post("/owners/<owner_type>/<owner_id>/categories/<category_id>")
@require_actor
def add_membership_route(owner_type: str, owner_id: str, category_id: str):
    try:
        row = membership_service.add_membership(owner_type, owner_id, category_id)
        return {"membership": row.to_dict()}, 201
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to add category membership")
        return {"error": "Internal server error"}, 500


@categories_bp.delete("/owners/<owner_type>/<owner_id>/categories/<category_id>")
@require_actor
def remove_membership_route(owner_type: str, owner_id: str, category_id: str):
    try:
        row = membership_service.remove_membership(owner_type, owner_id, category_id)
        return {"membership": row.to_dict()}
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to remove category membership")
        return {"error": "Internal server error"}, 500
