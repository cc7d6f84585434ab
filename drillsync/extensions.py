"""
Initialize Flask extensions for the application.

These extensions are instantiated here and initialized in the application factory.
"""

from flask_sqlalchemy import SQLAlchemy

# SQLAlchemy backs the local key-value store
db = SQLAlchemy()


def init_extensions(app):
    """Initialize all Flask extensions."""
    db.init_app(app)

    # Tables are tiny and fixed; create them on startup
    with app.app_context():
        from drillsync.models import StorageEntry  # noqa: F401
        db.create_all()
