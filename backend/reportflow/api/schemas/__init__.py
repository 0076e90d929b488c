"""API schema package."""

from reportflow.api.schemas.automation import AutomationActionResponse, AutomationStatusResponse
from reportflow.api.schemas.orders import OrderDocument, UserFile

__all__ = [
    "AutomationActionResponse",
    "AutomationStatusResponse",
    "OrderDocument",
    "UserFile",
]
