from flask import Blueprint

personnel: Blueprint = Blueprint("personnel", __name__, url_prefix="/api/personnel")

from .views import *
