"""
Configuration settings for the Academic Progression Engine
"""

import os

class Config:
    """Base configuration class"""

    # Database settings
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///academic_progression.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL') or 'INFO'

    # Academic rules
    ATTENDANCE_THRESHOLD = 75  # Minimum attendance percentage for automatic promotion
    PASS_PERCENTAGE = 40  # Subject and main assignment pass mark
    MIN_SEMESTER = 1
    MAX_SEMESTER = 8

    # Cohort settings
    DEFAULT_GROUP_CAPACITY = 50

    # Optimistic concurrency retries for academic history writes
    HISTORY_WRITE_RETRIES = int(os.environ.get('HISTORY_WRITE_RETRIES') or 3)

class TestingConfig(Config):
    """Configuration used by the test suite"""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    LOG_LEVEL = 'WARNING'
