"""Order change-event document."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from reportflow.core.constants import OrderStatus

if TYPE_CHECKING:
    from reportflow.db.models.order import Order


class UserFile(BaseModel):
    """Reference to the file the user submitted."""

    url: str | None = None
    filename: str | None = None


class OrderDocument(BaseModel):
    """
    The newly inserted order as delivered by an insert event.

    Field aliases follow the event payload (`fileName`, `user`,
    `paymentSource`, `userFile`); snake_case names work as well.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: uuid.UUID
    file_name: str | None = Field(default=None, alias="fileName")
    user_id: uuid.UUID | None = Field(default=None, alias="user")
    payment_source: str | None = Field(default=None, alias="paymentSource")
    user_file: UserFile = Field(default_factory=UserFile, alias="userFile")
    status: str = OrderStatus.PENDING.value

    @classmethod
    def from_order(cls, order: "Order") -> "OrderDocument":
        """Build the event view of a stored order row."""
        return cls(
            id=order.id,
            file_name=order.file_name,
            user_id=order.user_id,
            payment_source=order.payment_source,
            user_file=UserFile(url=order.user_file_url, filename=order.user_file_filename),
            status=order.status,
        )

    @property
    def upload_filename(self) -> str:
        """Name used for the storage object: userFile.filename, then fileName."""
        return self.user_file.filename or self.file_name or "file"


class OrderInsertEvent(BaseModel):
    """NOTIFY payload published by the orders insert trigger."""

    id: uuid.UUID
