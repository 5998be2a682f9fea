from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from .models import MAX_STOCK, Product


class ProductIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    price: Decimal = Field(..., gt=0, le=100000, decimal_places=2)
    stock_available: int = Field(0, ge=0, le=MAX_STOCK)


class StockAdjustmentOut(BaseModel):
    message: str
    product_id: str
    stock_available: int


def _make_product(product_id: str, p: ProductIn) -> Product:
    return Product(
        id=product_id,
        name=p.name,
        description=p.description,
        price=p.price,
        stock_available=p.stock_available,
    )
