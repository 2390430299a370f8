import strawberry
from typing import Optional, List
from strawberry.types import Info
from app.api.graphql.orders.types import Invoice, Order, OrderEvent, OrderFilterOptions
from app.api.graphql.common.connection import Connection
from app.api.graphql.permissions import IsAuthenticated

@strawberry.type
class OrderQuery:
    @strawberry.field(permission_classes=[IsAuthenticated])
    async def order(self, info: Info, id: strawberry.ID) -> Optional[Order]:
        """Get an order by ID."""
        from app.api.graphql.orders.resolvers import OrderResolver
        return await OrderResolver.get_order(info, id)

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def orders(
        self,
        info: Info,
        first: int = 20,
        after: Optional[str] = None,
        status: Optional[str] = None,
        payment_method: Optional[str] = None,
        risk_level: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Connection[Order]:
        """Get a page of orders, newest first."""
        from app.api.graphql.orders.resolvers import OrderResolver
        filters = {
            "status": status,
            "payment_method": payment_method,
            "risk_level": risk_level,
            "search": search,
        }
        return await OrderResolver.get_order_connection(info, first, after, filters)

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def order_events(self, info: Info, order_id: strawberry.ID) -> List[OrderEvent]:
        """Get the timeline of an order, oldest first."""
        from app.api.graphql.orders.resolvers import OrderResolver
        return await OrderResolver.get_events(info, order_id)

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def invoice(self, info: Info, order_id: strawberry.ID) -> Optional[Invoice]:
        from app.api.graphql.orders.resolvers import OrderResolver
        return await OrderResolver.get_invoice(info, order_id)

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def order_filter_options(self, info: Info) -> OrderFilterOptions:
        from app.api.graphql.orders.resolvers import OrderResolver
        return await OrderResolver.get_filter_options(info)
