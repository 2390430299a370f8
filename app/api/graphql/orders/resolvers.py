from typing import Any, Dict, List, Optional
import strawberry
from strawberry.types import Info

from app.db.models.order import Order as OrderModel
from app.db.models.invoice import Invoice as InvoiceModel
from app.db.models.order_event import OrderEvent as OrderEventModel
from app.api.graphql.orders.types import Invoice, Order, OrderEvent, OrderFilterOptions, TransitionPayload
from app.api.graphql.orders.inputs import OrderCreateInput, OrderUpdateInput
from app.api.graphql.resolvers import BaseResolver
from app.api.graphql.common.connection import Connection, build_connection, start_offset
from app.schemas.order import OrderCreate, OrderUpdate
from app.services.exceptions import (
    DuplicateOrderCodeError,
    InvalidTransitionError,
    OrderNotFoundError,
)
from app.services.orders.order_service import OrderService, TransitionResult

class OrderResolver(BaseResolver[OrderModel, Order]):
    """Resolver for Order-related operations."""
    
    model_class = OrderModel
    graphql_type_class = Order
    
    @classmethod
    def to_graphql_type(cls, model: OrderModel) -> Order:
        """Convert an OrderModel to a GraphQL Order type."""
        return Order(
            id=str(model.id),
            order_code=model.order_code,
            customer_name=model.customer_name,
            phone=model.phone,
            product_name=model.product_name,
            amount=model.amount,
            payment_method=model.payment_method,
            status=model.status,
            risk_level=model.risk_level,
            risk_score=model.risk_score,
            product_id=cls.optional_id(model.product_id),
            address=model.address,
            address_detail=model.address_detail,
            ward=model.ward,
            district=model.district,
            province=model.province,
            discount_amount=model.discount_amount,
            shipping_fee=model.shipping_fee,
            channel=model.channel,
            source=model.source,
            order_date=model.order_date,
            gender=model.gender,
            birth_year=model.birth_year,
            approved_at=model.approved_at,
            confirmation_sent_at=model.confirmation_sent_at,
            customer_confirmed_at=model.customer_confirmed_at,
            cancelled_at=model.cancelled_at,
            paid_at=model.paid_at,
            shipped_at=model.shipped_at,
            completed_at=model.completed_at,
            reject_reason=model.reject_reason,
            verification_reason=model.verification_reason,
            cancel_reason=model.cancel_reason,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    @staticmethod
    def invoice_to_graphql_type(model: InvoiceModel) -> Invoice:
        return Invoice(
            id=str(model.id),
            order_id=str(model.order_id),
            invoice_code=model.invoice_code,
            amount=model.amount,
            status=model.status,
            issue_date=model.issue_date,
            paid_at=model.paid_at,
            document_ref=model.document_ref,
        )

    @staticmethod
    def event_to_graphql_type(model: OrderEventModel) -> OrderEvent:
        return OrderEvent(
            id=str(model.id),
            order_id=str(model.order_id),
            event_type=model.event_type,
            payload=model.payload,
            created_at=model.created_at,
        )

    @classmethod
    def transition_to_graphql_type(cls, result: TransitionResult) -> TransitionPayload:
        return TransitionPayload(
            order=cls.to_graphql_type(result.order),
            applied=result.applied,
            message=result.message,
            confirmation_flow=result.metadata.get("confirmation_flow"),
            invoice=cls.invoice_to_graphql_type(result.invoice) if result.invoice else None,
        )

    @classmethod
    async def get_order(cls, info: Info, id: str) -> Optional[Order]:
        db = cls.get_db_from_info(info)
        user_id = cls.get_user_id_from_info(info)
        try:
            order = await OrderService.get_order(db, user_id, cls.parse_id(id))
        except OrderNotFoundError:
            return None
        return cls.to_graphql_type(order)

    @classmethod
    async def get_order_connection(
        cls,
        info: Info,
        first: int,
        after: Optional[str],
        filters: Dict[str, Any],
    ) -> Connection[Order]:
        """Get a page of orders; cursors encode the row offset."""
        db = cls.get_db_from_info(info)
        user_id = cls.get_user_id_from_info(info)
        offset = start_offset(after)
        orders, total_count = await OrderService.list_orders(
            db, user_id, offset=offset, limit=first, **filters
        )

        return build_connection([cls.to_graphql_type(model) for model in orders], offset, total_count)

    @classmethod
    async def get_events(cls, info: Info, order_id: str) -> List[OrderEvent]:
        db = cls.get_db_from_info(info)
        user_id = cls.get_user_id_from_info(info)
        try:
            events = await OrderService.get_events(db, user_id, cls.parse_id(order_id, "order id"))
        except OrderNotFoundError as e:
            raise ValueError(str(e))
        return [cls.event_to_graphql_type(event) for event in events]

    @classmethod
    async def get_invoice(cls, info: Info, order_id: str) -> Optional[Invoice]:
        db = cls.get_db_from_info(info)
        user_id = cls.get_user_id_from_info(info)
        try:
            invoice = await OrderService.get_invoice(db, user_id, cls.parse_id(order_id, "order id"))
        except OrderNotFoundError as e:
            raise ValueError(str(e))
        return cls.invoice_to_graphql_type(invoice) if invoice else None

    @classmethod
    async def get_filter_options(cls, info: Info) -> OrderFilterOptions:
        db = cls.get_db_from_info(info)
        options = await OrderService.list_filter_options(db, cls.get_user_id_from_info(info))
        return OrderFilterOptions(
            statuses=options.statuses,
            payment_methods=options.payment_methods,
            risk_levels=options.risk_levels,
        )

    @classmethod
    async def create_order(cls, info: Info, input: OrderCreateInput) -> Order:
        db = cls.get_db_from_info(info)
        user_id = cls.get_user_id_from_info(info)
        values = {
            key: value for key, value in vars(input).items() if value is not None
        }
        if "product_id" in values:
            values["product_id"] = cls.parse_id(values["product_id"], "product id")
        try:
            order = await OrderService.create_order(db, user_id, OrderCreate(**values))
        except DuplicateOrderCodeError as e:
            raise ValueError(str(e))
        return cls.to_graphql_type(order)

    @classmethod
    async def transition(cls, info: Info, order_id: str, action: str, reason: Optional[str] = None) -> TransitionPayload:
        """Run a state-machine action and map domain errors to GraphQL errors."""
        db = cls.get_db_from_info(info)
        user_id = cls.get_user_id_from_info(info)
        try:
            result = await OrderService.transition(
                db, user_id, cls.parse_id(order_id, "order id"), action, reason
            )
        except (OrderNotFoundError, InvalidTransitionError) as e:
            raise ValueError(str(e))
        return cls.transition_to_graphql_type(result)

    @classmethod
    async def update_order(cls, info: Info, order_id: str, input: OrderUpdateInput) -> Order:
        db = cls.get_db_from_info(info)
        user_id = cls.get_user_id_from_info(info)
        changes = {
            key: value for key, value in vars(input).items() if value is not strawberry.UNSET
        }
        if changes.get("product_id") is not None:
            changes["product_id"] = cls.parse_id(changes["product_id"], "product id")
        try:
            order = await OrderService.update_order_details(
                db, user_id, cls.parse_id(order_id, "order id"), OrderUpdate(**changes)
            )
        except OrderNotFoundError as e:
            raise ValueError(str(e))
        return cls.to_graphql_type(order)

    @classmethod
    async def delete_orders(cls, info: Info, order_ids: List[str]) -> int:
        db = cls.get_db_from_info(info)
        user_id = cls.get_user_id_from_info(info)
        ids = [cls.parse_id(order_id, "order id") for order_id in order_ids]
        return await OrderService.delete_orders(db, user_id, ids)

    @classmethod
    async def reconcile_order(cls, info: Info, order_id: str) -> Optional[Invoice]:
        db = cls.get_db_from_info(info)
        user_id = cls.get_user_id_from_info(info)
        try:
            invoice = await OrderService.reconcile_order(db, user_id, cls.parse_id(order_id, "order id"))
        except OrderNotFoundError as e:
            raise ValueError(str(e))
        return cls.invoice_to_graphql_type(invoice) if invoice else None
