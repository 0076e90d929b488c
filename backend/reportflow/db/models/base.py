"""
Declarative base for the orders schema.

`orders` and `users` are shared with the storefront that creates the
rows; this service only maps the columns it reads or finalizes.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

# Matches the names used by the initial migration
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


def generate_uuid() -> uuid.UUID:
    return uuid.uuid4()


def utcnow() -> datetime:
    """Timezone-aware UTC now; every timestamp column uses it."""
    return datetime.now(timezone.utc)
