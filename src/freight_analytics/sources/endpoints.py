"""Per data kind description of the remote freight API endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from freight_analytics.domain.models import FetchPattern


@dataclass(frozen=True)
class EndpointSpec:
    """How one kind of record is fetched from the remote API."""

    entity: str
    path: str
    pattern: FetchPattern = FetchPattern.PER_ACTOR
    actor_param: Optional[str] = "SalesRepName"
    counterpart_param: Optional[str] = "ConsigneeName"
    paginated: bool = False
    page_param: str = "PageNumber"
    page_size_param: str = "PageSize"
    items_path: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.entity:
            raise ValueError("entity must be provided")
        if not self.path.startswith("/"):
            raise ValueError("path must start with '/'")
        if self.pattern is FetchPattern.PER_ACTOR and not self.actor_param:
            raise ValueError("per-actor endpoints need an actor_param")


QUOTES = EndpointSpec(
    entity="quotes",
    path="/Quotes/filter",
    pattern=FetchPattern.PER_ACTOR,
    actor_param="SalesRepName",
)

SHIPPING_ORDERS = EndpointSpec(
    entity="shipping_orders",
    path="/api/shipping-orders",
    pattern=FetchPattern.BULK,
    actor_param=None,
    paginated=True,
    items_path="shippingOrders.items",
)

DEFAULT_ENDPOINTS: Mapping[str, EndpointSpec] = {
    QUOTES.entity: QUOTES,
    SHIPPING_ORDERS.entity: SHIPPING_ORDERS,
}
