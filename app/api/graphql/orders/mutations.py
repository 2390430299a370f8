import strawberry
from typing import List, Optional
from strawberry.types import Info
from strawberry.scalars import ID
from app.api.graphql.orders.types import Invoice, Order, TransitionPayload
from app.api.graphql.orders.inputs import OrderCreateInput, OrderUpdateInput
from app.api.graphql.permissions import IsAuthenticated

@strawberry.type
class OrderMutation:
    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def create_order(self, info: Info, input: OrderCreateInput) -> Order:
        from app.api.graphql.orders.resolvers import OrderResolver
        return await OrderResolver.create_order(info, input)

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def approve_order(self, info: Info, order_id: ID) -> TransitionPayload:
        from app.api.graphql.orders.resolvers import OrderResolver
        return await OrderResolver.transition(info, order_id, "approve")

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def reject_order(self, info: Info, order_id: ID, reason: Optional[str] = None) -> TransitionPayload:
        from app.api.graphql.orders.resolvers import OrderResolver
        return await OrderResolver.transition(info, order_id, "reject", reason)

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def flag_verification(self, info: Info, order_id: ID, reason: Optional[str] = None) -> TransitionPayload:
        from app.api.graphql.orders.resolvers import OrderResolver
        return await OrderResolver.transition(info, order_id, "flag_verification", reason)

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def send_confirmation(self, info: Info, order_id: ID) -> TransitionPayload:
        from app.api.graphql.orders.resolvers import OrderResolver
        return await OrderResolver.transition(info, order_id, "send_confirmation")

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def confirm_order(self, info: Info, order_id: ID) -> TransitionPayload:
        from app.api.graphql.orders.resolvers import OrderResolver
        return await OrderResolver.transition(info, order_id, "confirm")

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def cancel_order(self, info: Info, order_id: ID, reason: Optional[str] = None) -> TransitionPayload:
        from app.api.graphql.orders.resolvers import OrderResolver
        return await OrderResolver.transition(info, order_id, "cancel", reason)

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def mark_unreachable(self, info: Info, order_id: ID) -> TransitionPayload:
        from app.api.graphql.orders.resolvers import OrderResolver
        return await OrderResolver.transition(info, order_id, "mark_unreachable")

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def mark_paid(self, info: Info, order_id: ID) -> TransitionPayload:
        from app.api.graphql.orders.resolvers import OrderResolver
        return await OrderResolver.transition(info, order_id, "mark_paid")

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def mark_shipped(self, info: Info, order_id: ID) -> TransitionPayload:
        from app.api.graphql.orders.resolvers import OrderResolver
        return await OrderResolver.transition(info, order_id, "mark_shipped")

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def mark_completed(self, info: Info, order_id: ID) -> TransitionPayload:
        from app.api.graphql.orders.resolvers import OrderResolver
        return await OrderResolver.transition(info, order_id, "mark_completed")

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def update_order(self, info: Info, order_id: ID, input: OrderUpdateInput) -> Order:
        from app.api.graphql.orders.resolvers import OrderResolver
        return await OrderResolver.update_order(info, order_id, input)

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def delete_orders(self, info: Info, order_ids: List[ID]) -> int:
        from app.api.graphql.orders.resolvers import OrderResolver
        return await OrderResolver.delete_orders(info, order_ids)

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def reconcile_order(self, info: Info, order_id: ID) -> Optional[Invoice]:
        """Re-run the invoice rules for an order."""
        from app.api.graphql.orders.resolvers import OrderResolver
        return await OrderResolver.reconcile_order(info, order_id)
