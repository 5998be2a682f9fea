# catalog/storage.py
from abc import ABC, abstractmethod
from typing import List, Optional

from loguru import logger

from .errors import ValidationError
from .ids import next_product_id
from .models import MAX_STOCK, Product


class ProductStore(ABC):
    """Everything the HTTP layer needs from persisted product records.

    Stock adjustments read the record first and report absence or shortage as
    ``False``. The write itself goes through ``_apply_stock_delta``, which every
    backend implements as a single-record transaction guarded on the stock
    staying within ``0..MAX_STOCK``. A concurrent caller that slipped in
    between the read and the write makes the adjustment fail instead of
    overselling.
    """

    name = "store"

    def __init__(self):
        self.log = logger.bind(store=self.name)

    @abstractmethod
    async def list_all(self) -> List[Product]:
        ...

    @abstractmethod
    async def get_by_id(self, product_id: str) -> Optional[Product]:
        ...

    @abstractmethod
    async def exists(self, product_id: str) -> bool:
        ...

    @abstractmethod
    async def insert(self, product: Product) -> None:
        ...

    @abstractmethod
    async def update(self, product: Product) -> None:
        ...

    @abstractmethod
    async def delete(self, product_id: str) -> None:
        ...

    @abstractmethod
    async def _top_id(self) -> Optional[str]:
        """Greatest id in descending string order, or None when empty."""

    @abstractmethod
    async def _apply_stock_delta(self, product_id: str, delta: int) -> Optional[int]:
        """Add ``delta`` to the stock inside one transaction and return the new stock.

        Returns None without writing when the record is gone or the result
        would fall outside ``0..MAX_STOCK``. Any other failure rolls back and
        propagates.
        """

    async def close(self) -> None:
        pass

    async def generate_unique_id(self) -> str:
        return next_product_id(await self._top_id())

    async def decrement_stock(self, product_id: str, quantity: int) -> bool:
        return await self.decrement_stock_level(product_id, quantity) is not None

    async def add_stock(self, product_id: str, quantity: int) -> bool:
        return await self.add_stock_level(product_id, quantity) is not None

    async def decrement_stock_level(self, product_id: str, quantity: int) -> Optional[int]:
        """Like ``decrement_stock`` but returns the committed stock, or None."""
        _check_quantity(quantity)
        product = await self.get_by_id(product_id)
        if product is None:
            return None
        if product.stock_available < quantity:
            self.log.warning(
                "insufficient stock for {}: requested {}, available {}",
                product_id, quantity, product.stock_available,
            )
            return None
        stock = await self._apply_stock_delta(product_id, -quantity)
        if stock is not None:
            self.log.info("decremented stock of {} by {}", product_id, quantity)
        else:
            self.log.warning("stock of {} changed concurrently, decrement of {} rejected", product_id, quantity)
        return stock

    async def add_stock_level(self, product_id: str, quantity: int) -> Optional[int]:
        _check_quantity(quantity)
        if await self.get_by_id(product_id) is None:
            return None
        stock = await self._apply_stock_delta(product_id, quantity)
        if stock is not None:
            self.log.info("added {} to stock of {}", quantity, product_id)
        else:
            self.log.warning("adding {} to stock of {} rejected", quantity, product_id)
        return stock


def _check_quantity(quantity: int) -> None:
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")
    if quantity > MAX_STOCK:
        raise ValidationError(f"quantity must be <= {MAX_STOCK}")
