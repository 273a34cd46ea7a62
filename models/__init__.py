"""Data models package."""
from models.activity import Activity, ActivityUser, OrderDetails, OrderItem, RelatedEntity
from models.credentials import ApiCredentials, ConnectionTestResult

__all__ = [
    "Activity",
    "ActivityUser",
    "ApiCredentials",
    "ConnectionTestResult",
    "OrderDetails",
    "OrderItem",
    "RelatedEntity",
]
