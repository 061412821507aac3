from flask import Blueprint

stats_api_bp = Blueprint('stats_api', __name__)

from . import routes  # noqa: E402,F401
