from flask import abort, current_app, jsonify, request
from flask_login import current_user, login_required

from .. import mongo
from ..filtering import FieldRegistry, FilterScope, tree_from_dict, validate
from . import filters
from .repository import SavedFilterForbidden, SavedFilterRepository

# JSON attribute -> repository attribute
_ATTRIBUTES = {
    "name": "name",
    "description": "description",
    "scope": "scope",
    "filterTree": "filter_tree",
}


def _repository() -> SavedFilterRepository:
    return SavedFilterRepository(mongo.db)


def _payload() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description="Expected a JSON object.")
    unknown = set(data) - set(_ATTRIBUTES)
    if unknown:
        abort(400, description=f"Unknown attributes: {', '.join(sorted(unknown))}")
    return {_ATTRIBUTES[key]: value for key, value in data.items()}


def _parse_scope(value) -> FilterScope:
    try:
        return FilterScope.parse(value)
    except ValueError:
        abort(400, description="Scope must be one of: private, shared.")


def _checked_tree(raw):
    """Parse and strictly validate a tree against the current fields; errors propagate to the JSON handlers."""
    tree = tree_from_dict(raw, current_app.config["MAX_FILTER_TREE_DEPTH"])
    result = validate(tree, FieldRegistry.from_database(mongo.db))
    result.raise_for_errors()
    return tree, [w.to_json() for w in result.warnings]


@filters.route("/", methods=["GET"])
@login_required
def list_filters():
    saved = _repository().list_visible_to(current_user.id)
    return jsonify([s.to_json() for s in saved])


@filters.route("/", methods=["POST"])
@login_required
def create_filter():
    data = _payload()
    if "name" not in data or "filter_tree" not in data:
        return jsonify({"error": "Both name and filterTree are required.", "status": "NOK"}), 400
    tree, warnings = _checked_tree(data["filter_tree"])
    scope = _parse_scope(data.get("scope", FilterScope.PRIVATE.value))
    try:
        saved = _repository().create(
            owner_id=current_user.id,
            name=data["name"],
            filter_tree=tree,
            description=data.get("description"),
            scope=scope,
        )
    except ValueError as e:
        return jsonify({"error": str(e), "status": "NOK"}), 400
    return jsonify({**saved.to_json(), "warnings": warnings}), 201


@filters.route("/validate", methods=["POST"])
@login_required
def validate_filter():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or "filterTree" not in data:
        abort(400, description="Expected a JSON object with a filterTree.")
    tree = tree_from_dict(data["filterTree"], current_app.config["MAX_FILTER_TREE_DEPTH"])
    result = validate(tree, FieldRegistry.from_database(mongo.db))
    return jsonify(result.to_json())


@filters.route("/fields", methods=["GET"])
@login_required
def list_fields():
    return jsonify(FieldRegistry.from_database(mongo.db).catalogue())


@filters.route("/<string(length=36):filter_id>", methods=["GET"])
@login_required
def get_filter(filter_id):
    return jsonify(_repository().get(filter_id, current_user.id).to_json())


@filters.route("/<string(length=36):filter_id>", methods=["PATCH"])
@login_required
def update_filter(filter_id):
    patch = _payload()
    repository = _repository()
    # Access is settled before the new tree is looked at.
    if not repository.get(filter_id, current_user.id).is_owned_by(current_user.id):
        raise SavedFilterForbidden(filter_id, "edit")

    warnings = []
    if "filter_tree" in patch:
        patch["filter_tree"], warnings = _checked_tree(patch["filter_tree"])
    if "scope" in patch:
        patch["scope"] = _parse_scope(patch["scope"])
    try:
        saved = repository.update(filter_id, current_user.id, patch)
    except ValueError as e:
        return jsonify({"error": str(e), "status": "NOK"}), 400
    return jsonify({**saved.to_json(), "warnings": warnings})


@filters.route("/<string(length=36):filter_id>", methods=["DELETE"])
@login_required
def delete_filter(filter_id):
    _repository().delete(filter_id, current_user.id)
    return "", 204
