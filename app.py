"""
Academic Progression Engine
Flask application factory providing configuration and database context
"""

import logging

from flask import Flask
from config import Config
from database import db, init_db

def configure_logging(app):
    """Configure root logging from the application config"""
    logging.basicConfig(
        level=getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

def create_app(config_class=Config):
    """Application factory pattern"""
    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app)

    # Initialize extensions with app
    db.init_app(app)

    # Initialize database
    init_db(app)

    return app

