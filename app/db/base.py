# File: app/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def load_models():
    """Import every model module so relationships and metadata are complete."""
    from app.models import comment, notification, product_info, project, ticket, user  # noqa: F401
    return Base.metadata
