"""
Database base configuration
"""
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

# Create declarative base for SQLAlchemy models
Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


# Import all models here to ensure they are registered with SQLAlchemy
def import_models():
    """Import all models to register them with SQLAlchemy"""
    from app.models import store  # noqa: F401
    from app.models import page  # noqa: F401
    from app.models import page_version  # noqa: F401
    from app.models import form_submission  # noqa: F401
    from app.models import analytics_event  # noqa: F401
    from app.models import ab_test  # noqa: F401
    from app.models import tracking_number  # noqa: F401
    from app.models import audit_log  # noqa: F401
