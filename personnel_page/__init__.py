import os
from pathlib import Path

import sentry_sdk
from flask import Flask
from flask_login import LoginManager
from flask_principal import Principal
from flask_pymongo import PyMongo
from flask_wtf import CSRFProtect
from public import public
from sentry_sdk.integrations.flask import FlaskIntegration
from sentry_sdk.integrations.logging import ignore_logger

if instance_path := os.environ.get("INSTANCE_PATH", None):
    instance_path = instance_path.replace("%pkg%", str(Path(__file__).absolute().parent))
app: Flask = Flask(__name__, instance_path=instance_path, instance_relative_config=True)
app.config.from_object("personnel_page.defaults")
app.config.from_pyfile("config.py", silent=True)
app.config.from_prefixed_env()
public(app=app)

if os.environ.get("TESTING", False):
    app.testing = True

if not app.testing and app.config["SENTRY_INGEST"]:  # pragma: no cover
    sentry_sdk.init(
        dsn=app.config["SENTRY_INGEST"],
        integrations=[FlaskIntegration()],
        environment=app.config["SENTRY_ENV"],
        sample_rate=app.config["SENTRY_ERROR_SAMPLE_RATE"],
        traces_sample_rate=app.config["SENTRY_TRACES_SAMPLE_RATE"],
        send_default_pii=True,
    )

    # Skipped filter branches are expected after schema changes, not incidents.
    ignore_logger("personnel_page.filtering.compiler")

mongo: PyMongo = PyMongo(app)
public(mongo=mongo)

login: LoginManager = LoginManager(app)
public(login=login)

principal: Principal = Principal(app)
public(principal=principal)

csrf: CSRFProtect = CSRFProtect(app)
public(csrf=csrf)

from .custom_fields import custom_fields as custom_fields_bp
from .filters import filters as filters_bp
from .personnel import personnel as personnel_bp

with app.app_context():
    app.register_blueprint(custom_fields_bp)
    app.register_blueprint(filters_bp)
    app.register_blueprint(personnel_bp)

from .commands import *
from .user.models import *
from .views import *
