# Overview: Flask extension instances for database and migrations.

from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()


def get_services():
    """Core services wired by create_app() for the current application."""
    return current_app.extensions["stocksense"]
