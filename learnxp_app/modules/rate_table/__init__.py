from flask import Blueprint

rate_table_api_bp = Blueprint('rate_table_api', __name__)

from . import routes  # noqa: E402,F401
