from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal
import uuid

class ProductBulkCreate(BaseModel):
    names: List[str] = Field(min_length=1)
    price: Optional[Decimal] = None

class Product(BaseModel):
    id: uuid.UUID
    name: str
    status: str
    price: Optional[Decimal] = None

    model_config = {
        "from_attributes": True
    }
