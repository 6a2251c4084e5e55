"""
Database configuration and initialization for the Academic Progression Engine
"""

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine
import functools
import logging
import sqlite3

logger = logging.getLogger(__name__)

# Initialize SQLAlchemy instance
db = SQLAlchemy()

@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key constraints for SQLite"""
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

def init_db(app):
    """Initialize database with application context"""
    with app.app_context():
        # Import all models to ensure they are registered
        from models import (
            Teacher, Subject, Group, GroupSubjectTeacher, Student,
            SemesterRecord, SubjectRecord, AssignmentResult,
            Assignment, Submission, AttendanceSession, AttendanceEntry
        )

        # Create all tables
        db.create_all()
        logger.info("Database initialized at %s", app.config['SQLALCHEMY_DATABASE_URI'])

def reset_database(app):
    """Reset database - WARNING: This will delete all data"""
    with app.app_context():
        # Drop all tables
        db.drop_all()

        # Create all tables
        db.create_all()
        logger.warning("Database reset completed")

class DatabaseError(Exception):
    """Custom exception for database operations"""
    pass

def handle_db_error(func):
    """Decorator to turn unexpected database failures into DatabaseError"""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DatabaseError:
            raise
        except Exception as e:
            db.session.rollback()
            raise DatabaseError(f"Database operation failed: {str(e)}") from e
    return wrapper
