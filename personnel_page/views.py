from flask import jsonify
from werkzeug.exceptions import HTTPException

from . import app
from .custom_fields.repository import CustomFieldValueError
from .filtering import FilterValidationError, MalformedTreeError
from .filters.repository import SavedFilterForbidden, SavedFilterNotFound


@app.errorhandler(HTTPException)
def error(e):
    return jsonify({"error": e.description, "status": "NOK"}), e.code


@app.errorhandler(MalformedTreeError)
def malformed_tree(e):
    return jsonify({"error": str(e), "path": e.path, "status": "NOK"}), 400


@app.errorhandler(FilterValidationError)
def invalid_filter(e):
    return jsonify({"error": "Invalid filter.", "issues": [i.to_json() for i in e.issues], "status": "NOK"}), 400


@app.errorhandler(CustomFieldValueError)
def invalid_custom_values(e):
    return jsonify({"error": str(e), "problems": e.problems, "status": "NOK"}), 400


@app.errorhandler(SavedFilterNotFound)
def saved_filter_not_found(e):
    return jsonify({"error": str(e), "status": "NOK"}), 404


@app.errorhandler(SavedFilterForbidden)
def saved_filter_forbidden(e):
    return jsonify({"error": str(e), "status": "NOK"}), 403
