# Overview: Flask API routes for owned contact sub-records; parses input and returns JSON responses.

# backend/schoolhub/routes/sub_records.py
"""
Sub-record routes (kind: address, contact_number, email_address, metadata):

- GET    /api/owners/<type>/<id>/records/<kind>
- GET    /api/owners/<type>/<id>/records/<kind>/default
- POST   /api/owners/<type>/<id>/records/<kind>
- POST   /api/owners/<type>/<id>/records/<kind>/<record_id>/default
- PATCH  /api/owners/<type>/<id>/records/<kind>/<record_id>
- DELETE /api/owners/<type>/<id>/records/<kind>/<record_id>

set-default guards on the OWNER's row_version (If-Match / "row_version").
"""
from flask import Blueprint, request, current_app

from ..services import sub_record_service
from ..services.owner_service import get_bundle
from ..errors import DomainError, error_body
from ..validation import ValidationError, validate_payload, policy_for, enforce_rules_sub_record
from ..decorators import require_actor, parse_include_deleted, parse_expected_version

sub_records_bp = Blueprint(
    "sub_records", __name__, url_prefix="/api/owners/<owner_type>/<owner_id>/records"
)


def _clean(owner_type: str, kind: str, payload: dict, partial: bool) -> dict:
    model = get_bundle(owner_type).sub_record_model(kind)
    patch = validate_payload(model=model, payload=payload, policy=policy_for(model), partial=partial)
    enforce_rules_sub_record(kind, patch)
    return patch


@sub_records_bp.get("/<kind>")
def list_records_route(owner_type: str, owner_id: str, kind: str):
    try:
        records = sub_record_service.list_sub_records(
            owner_type, kind, owner_id, include_deleted=parse_include_deleted()
        )
        return {"items": [r.to_dict() for r in records], "count": len(records)}
    except DomainError as e:
        return error_body(e)


@sub_records_bp.get("/<kind>/default")
def get_default_route(owner_type: str, owner_id: str, kind: str):
    try:
        record = sub_record_service.get_default_sub_record(owner_type, kind, owner_id)
        return {"record": record.to_dict() if record is not None else None}
    except DomainError as e:
        return error_body(e)


@sub_records_bp.post("/<kind>")
@require_actor
def attach_record_route(owner_type: str, owner_id: str, kind: str):
    """The first record of a kind becomes the default automatically."""
    payload = request.get_json(silent=True) or {}

    try:
        fields = _clean(owner_type, kind, payload, partial=False)
        record = sub_record_service.attach_sub_record(owner_type, kind, owner_id, fields)
        return {"record": record.to_dict()}, 201
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to attach sub-record")
        return {"error": "Internal server error"}, 500


@sub_records_bp.post("/<kind>/<record_id>/default")
@require_actor
def set_default_route(owner_type: str, owner_id: str, kind: str, record_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        record = sub_record_service.set_default(
            owner_type, kind, owner_id, record_id,
            expected_owner_version=parse_expected_version(payload),
        )
        return {"record": record.to_dict()}
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to set default sub-record")
        return {"error": "Internal server error"}, 500


@sub_records_bp.patch("/<kind>/<record_id>")
@require_actor
def update_record_route(owner_type: str, owner_id: str, kind: str, record_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        expected = parse_expected_version(payload)
        payload.pop("row_version", None)
        fields = _clean(owner_type, kind, payload, partial=True)
        record = sub_record_service.get_sub_record(owner_type, kind, record_id)
        if record.entity_id != owner_id:
            return {"error": f"{kind} '{record_id}' not found"}, 404
        record = sub_record_service.update_sub_record(
            owner_type, kind, record_id, fields, expected_version=expected
        )
        return {"record": record.to_dict()}
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to update sub-record")
        return {"error": "Internal server error"}, 500


@sub_records_bp.delete("/<kind>/<record_id>")
@require_actor
def detach_record_route(owner_type: str, owner_id: str, kind: str, record_id: str):
    try:
        record = sub_record_service.get_sub_record(owner_type, kind, record_id)
        if record.entity_id != owner_id:
            return {"error": f"{kind} '{record_id}' not found"}, 404
        record = sub_record_service.detach_sub_record(
            owner_type, kind, record_id, expected_version=parse_expected_version()
        )
        return {"record": record.to_dict()}
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return error_body(e)
    except Exception:
        current_app.logger.exception("Failed to detach sub-record")
        return {"error": "Internal server error"}, 500
