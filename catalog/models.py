# catalog/models.py
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import Integer, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Stock and quantities stay within a signed 32-bit int.
MAX_STOCK = 2**31 - 1


class Base(DeclarativeBase):
    pass


class ProductRow(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(6), primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(8, 2))
    stock_available: Mapped[int] = mapped_column(Integer, default=0)


class Product(BaseModel):
    """Detached copy of a product record; mutating it never touches the store."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    price: Decimal
    stock_available: int = Field(..., ge=0, le=MAX_STOCK)
