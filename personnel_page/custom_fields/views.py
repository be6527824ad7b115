from flask import abort, current_app, jsonify, request
from flask_login import login_required

from .. import mongo
from ..common.permissions import admin_permission
from . import custom_fields
from .repository import CustomFieldError, CustomFieldRepository

# JSON attribute -> repository attribute
_ATTRIBUTES = {
    "name": "name",
    "label": "label",
    "fieldType": "field_type",
    "options": "options",
    "required": "required",
    "orderIndex": "order_index",
}


def _repository() -> CustomFieldRepository:
    return CustomFieldRepository(mongo.db)


def _payload() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description="Expected a JSON object.")
    unknown = set(data) - set(_ATTRIBUTES)
    if unknown:
        abort(400, description=f"Unknown attributes: {', '.join(sorted(unknown))}")
    return {_ATTRIBUTES[key]: value for key, value in data.items()}


@custom_fields.route("/", methods=["GET"])
@login_required
@admin_permission.require(403)
def list_fields():
    return jsonify([definition.to_json() for definition in _repository().list_all()])


@custom_fields.route("/", methods=["POST"])
@login_required
@admin_permission.require(403)
def create_field():
    data = _payload()
    if "name" not in data or "field_type" not in data:
        abort(400, description="Both name and fieldType are required.")
    try:
        definition = _repository().create(
            name=data["name"],
            label=data.get("label") or data["name"],
            field_type=data["field_type"],
            options=data.get("options"),
            required=data.get("required", False),
            order_index=data.get("order_index", 0),
        )
    except CustomFieldError as e:
        return jsonify({"error": str(e), "status": "NOK"}), 400
    return jsonify(definition.to_json()), 201


@custom_fields.route("/<string(length=36):field_id>", methods=["GET"])
@login_required
@admin_permission.require(403)
def get_field(field_id):
    definition = _repository().get(field_id)
    if definition is None:
        abort(404, description="Custom field not found.")
    return jsonify(definition.to_json())


@custom_fields.route("/<string(length=36):field_id>", methods=["PATCH"])
@login_required
@admin_permission.require(403)
def update_field(field_id):
    try:
        definition = _repository().update(field_id, _payload())
    except CustomFieldError as e:
        return jsonify({"error": str(e), "status": "NOK"}), 400
    if definition is None:
        abort(404, description="Custom field not found.")
    return jsonify(definition.to_json())


@custom_fields.route("/<string(length=36):field_id>", methods=["DELETE"])
@login_required
@admin_permission.require(403)
def delete_field(field_id):
    purge = request.args.get("purge", "0").lower() in ("1", "true", "yes")
    deleted = _repository().delete(
        field_id, purge_values=purge, records_collection=current_app.config["PERSONNEL_COLLECTION"]
    )
    if not deleted:
        abort(404, description="Custom field not found.")
    return "", 204
