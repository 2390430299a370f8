from typing import Optional
import strawberry
from strawberry.scalars import ID
from app.api.graphql.types.scalars import DateTime, Numeric

@strawberry.input
class OrderCreateInput:
    order_code: str
    customer_name: str
    phone: str
    product_name: str
    amount: Numeric
    product_id: Optional[ID] = None
    payment_method: str = "COD"
    address: Optional[str] = None
    address_detail: Optional[str] = None
    ward: Optional[str] = None
    district: Optional[str] = None
    province: Optional[str] = None
    discount_amount: Optional[Numeric] = None
    shipping_fee: Optional[Numeric] = None
    channel: Optional[str] = None
    source: Optional[str] = None
    order_date: Optional[DateTime] = None
    gender: Optional[str] = None
    birth_year: Optional[int] = None

@strawberry.input
class OrderUpdateInput:
    customer_name: Optional[str] = strawberry.UNSET
    phone: Optional[str] = strawberry.UNSET
    address: Optional[str] = strawberry.UNSET
    address_detail: Optional[str] = strawberry.UNSET
    ward: Optional[str] = strawberry.UNSET
    district: Optional[str] = strawberry.UNSET
    province: Optional[str] = strawberry.UNSET
    product_id: Optional[ID] = strawberry.UNSET
    product_name: Optional[str] = strawberry.UNSET
    amount: Optional[Numeric] = strawberry.UNSET
    discount_amount: Optional[Numeric] = strawberry.UNSET
    shipping_fee: Optional[Numeric] = strawberry.UNSET
    channel: Optional[str] = strawberry.UNSET
    source: Optional[str] = strawberry.UNSET
    order_date: Optional[DateTime] = strawberry.UNSET
    gender: Optional[str] = strawberry.UNSET
    birth_year: Optional[int] = strawberry.UNSET
