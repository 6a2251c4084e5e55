"""
Database helper utilities for the Academic Progression Engine
"""

import functools
import logging

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from database import db, handle_db_error
from utils.exceptions import Conflict, NotFound

logger = logging.getLogger(__name__)

@handle_db_error
def safe_add_and_commit(obj):
    """Safely add object to database with error handling"""
    try:
        db.session.add(obj)
        db.session.commit()
        return True, "Record added successfully"
    except IntegrityError as e:
        db.session.rollback()
        if 'UNIQUE constraint failed' in str(e):
            return False, "Record with this identifier already exists"
        return False, "Database constraint violation"

@handle_db_error
def safe_update_and_commit():
    """Safely commit database changes with error handling"""
    try:
        db.session.commit()
        return True, "Records updated successfully"
    except IntegrityError as e:
        db.session.rollback()
        if 'UNIQUE constraint failed' in str(e):
            return False, "Duplicate entry found"
        return False, "Database constraint violation"

def get_or_raise(model, object_id, label=None):
    """Load a row by primary key or raise NotFound"""
    obj = db.session.get(model, object_id) if object_id is not None else None
    if obj is None:
        raise NotFound(f"{label or model.__name__} not found")
    return obj

def retry_on_conflict(attempts=None):
    """
    Re-run a read-modify-write unit of work when a concurrent writer wins.

    The wrapped function must load its rows itself and commit; a stale version
    or a unique-constraint race rolls the session back and the whole function
    runs again on fresh state. After the last attempt Conflict is raised.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            max_attempts = attempts or current_app.config.get('HISTORY_WRITE_RETRIES', 3)
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except (StaleDataError, IntegrityError) as e:
                    db.session.rollback()
                    logger.warning("Concurrent update in %s (attempt %d/%d): %s",
                                   func.__name__, attempt, max_attempts, e)
            raise Conflict("Record was modified concurrently; please retry")
        return wrapper
    return decorator
