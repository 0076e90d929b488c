"""
Models package — re-exports Base and all models.

Import models here so Alembic's `target_metadata = Base.metadata`
picks up every table automatically.

When adding a new model:
    1. Create `reportflow/db/models/<table_name>.py`
    2. Import it here
"""

from reportflow.db.models.base import Base
from reportflow.db.models.order import Order
from reportflow.db.models.user import User

__all__ = [
    "Base",
    "Order",
    "User",
]
