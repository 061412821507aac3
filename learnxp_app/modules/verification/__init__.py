from flask import Blueprint

verification_api_bp = Blueprint('verification_api', __name__)

from . import routes  # noqa: E402,F401
