from flask import Blueprint

filters: Blueprint = Blueprint("filters", __name__, url_prefix="/api/filters")

from .views import *
