# Overview: Shared response helpers for API blueprints.

import sys

from flask import current_app

from ..config import is_production
from ..extensions import db


def internal_error(log_message: str):
    """
    Log the active exception, roll back, and build the generic 500 body.

    Outside production the exception text is echoed as "detail" to ease
    debugging; production responses never carry it.
    """
    current_app.logger.exception(log_message)
    db.session.rollback()

    body = {"error": "Internal server error"}
    if not is_production(current_app.config):
        exc = sys.exc_info()[1]
        if exc is not None:
            body["detail"] = str(exc)
    return body, 500
