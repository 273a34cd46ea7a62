"""
Activity model - normalized representation of CRM feed entries.

Every upstream record (note, todo, order) is converted into this shape
before it reaches a subscriber. Field names serialize in camelCase so the
UI can consume the payload unchanged.
"""
from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# Orders have no tag of their own and travel as "call".
ActivityType = Literal["note", "message", "task", "call"]


class ActivityUser(BaseModel):
    """The person an activity is attributed to."""

    id: str
    name: str
    avatar: Optional[str] = None


class RelatedEntity(BaseModel):
    """The CRM entity (usually a customer) an activity concerns."""

    type: str
    id: str
    name: str


class OrderItem(BaseModel):
    """One order row attached to an order activity."""

    id: Optional[str] = None
    name: str
    quantity: Optional[float] = None
    price: Optional[float] = None


class OrderDetails(BaseModel):
    """Structured value/line detail for order activities."""

    model_config = ConfigDict(populate_by_name=True)

    total_value: Optional[str] = Field(default=None, alias="totalValue")
    items: Optional[list[OrderItem]] = None


class Activity(BaseModel):
    """One displayable feed entry."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: ActivityType
    content: str
    timestamp: str
    user: ActivityUser
    related_to: Optional[RelatedEntity] = Field(default=None, alias="relatedTo")
    order_details: Optional[OrderDetails] = Field(default=None, alias="orderDetails")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return self.model_dump(by_alias=True, exclude_none=True)
