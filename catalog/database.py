import asyncio
from typing import Any, Dict, List, Optional

from .errors import ConflictError, NotFoundError
from .models import MAX_STOCK, Product
from .storage import ProductStore

# In-process product store: plain dicts plus one lock per product key.


class InMemoryProductStore(ProductStore):
    name = "memory"

    def __init__(self):
        super().__init__()
        self._products: Dict[str, Dict[str, Any]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _get_lock(self, key: str) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    async def list_all(self) -> List[Product]:
        return [Product(**row) for row in self._products.values()]

    async def get_by_id(self, product_id: str) -> Optional[Product]:
        row = self._products.get(product_id)
        return Product(**row) if row is not None else None

    async def exists(self, product_id: str) -> bool:
        return product_id in self._products

    async def insert(self, product: Product) -> None:
        if product.id in self._products:
            raise ConflictError(product.id)
        self._products[product.id] = product.model_dump()

    async def update(self, product: Product) -> None:
        if product.id not in self._products:
            raise NotFoundError(product.id)
        lock = self._get_lock(f"product:{product.id}")
        async with lock:
            if product.id not in self._products:
                raise NotFoundError(product.id)
            self._products[product.id] = product.model_dump()

    async def delete(self, product_id: str) -> None:
        self._products.pop(product_id, None)
        self._locks.pop(f"product:{product_id}", None)

    async def _top_id(self) -> Optional[str]:
        if not self._products:
            return None
        return max(self._products)

    async def _apply_stock_delta(self, product_id: str, delta: int) -> Optional[int]:
        if product_id not in self._products:
            return None
        lock = self._get_lock(f"product:{product_id}")
        async with lock:
            row = self._products.get(product_id)
            if row is None:
                return None
            stock = row["stock_available"] + delta
            if stock < 0 or stock > MAX_STOCK:
                return None
            # Commit by swapping in a fresh dict; the old one stays intact on failure.
            self._products[product_id] = {**row, "stock_available": stock}
            return stock
