from flask import Blueprint

custom_fields: Blueprint = Blueprint("custom_fields", __name__, url_prefix="/api/custom-fields")

from .views import *
