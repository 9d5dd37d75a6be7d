from flask import Blueprint

api_bp = Blueprint(
    "api",
    __name__,
    url_prefix="/api"
)

# IMPORTANT: import routes after blueprint definition
from . import routes  # noqa: E402,F401
