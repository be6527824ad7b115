import logging
from logging import Logger

from flask import abort, current_app, jsonify, request
from flask_login import current_user, login_required

from .. import mongo
from ..filtering import (
    FieldRegistry,
    FilterTree,
    PredicateCompiler,
    from_simple_filters,
    has_simple_filters,
    to_query,
    tree_from_json,
    validate,
)
from ..filters.repository import SavedFilterRepository
from . import personnel
from .repository import PersonnelRepository

logger: Logger = logging.getLogger(__name__)


def _select_tree(registry: FieldRegistry) -> tuple[FilterTree | None, list[dict]]:
    """Pick the filter of the request: a saved filter, an ad hoc tree, the flat parameters, or none."""
    args = request.args
    if filter_id := args.get("filter_id"):
        saved = SavedFilterRepository(mongo.db).get(filter_id, current_user.id)
        logger.debug("Applying saved filter %r", saved)
        return saved.filter_tree, []

    if raw := args.get("filter_tree"):
        if len(raw.encode("utf-8")) > current_app.config["MAX_FILTER_TREE_SIZE"]:
            abort(400, description="Filter tree is too large.")
        tree = tree_from_json(raw, current_app.config["MAX_FILTER_TREE_DEPTH"])
        result = validate(tree, registry)
        result.raise_for_errors()
        return tree, [w.to_json() for w in result.warnings]

    if has_simple_filters(args):
        return from_simple_filters(args), []

    return None, []


@personnel.route("/", methods=["GET"])
@login_required
def list_personnel():
    registry = FieldRegistry.from_database(mongo.db)
    tree, warnings = _select_tree(registry)

    predicate = None
    if tree is not None:
        compiler = PredicateCompiler(registry)
        predicate = compiler.compile(tree)
        warnings += [w.to_json() for w in compiler.get_warnings()]

    records = PersonnelRepository(mongo.db, current_app.config["PERSONNEL_COLLECTION"]).find(to_query(predicate))
    return jsonify({"personnel": records, "warnings": warnings})
