"""
Pydantic schemas for capability token claims.

Field aliases follow the wire format issued by the order service (camelCase
inside ``addl``).
"""
import enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(str, enum.Enum):
    """Order lifecycle status as reported by the order service."""
    CREATED = "created"
    ACCEPTED = "accepted"
    QUEUED = "queued"
    WORK_STARTED = "work_started"
    WORK_COMPLETED = "work_completed"
    DELIVERED = "delivered"
    PENDING = "pending"
    DECLINED = "declined"


class OrderMetadata(BaseModel):
    """Order payload carried opaquely inside a token."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    order_id: str = Field(..., alias="orderId")
    order_cart_id: str = Field(..., alias="orderCartId")
    order_song_ids: List[str] = Field(default_factory=list, alias="orderSongIds")
    order_status: OrderStatus = Field(..., alias="orderStatus")


class MayAct(BaseModel):
    model_config = ConfigDict(frozen=True)

    client_id: str


class Claims(BaseModel):
    """
    Signed payload of a capability token.

    ``nbf`` and ``iat`` are carried as issued; nothing here compares them to
    the current time.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    realm: str
    sub: str
    may_act: MayAct
    nbf: int
    iat: int
    addl: OrderMetadata
    aud: str

    def to_payload(self) -> dict:
        """Serialize to the JSON-ready dict that gets signed."""
        return self.model_dump(mode="json", by_alias=True)
