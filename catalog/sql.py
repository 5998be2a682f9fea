# catalog/sql.py
from contextlib import contextmanager
from typing import List, Optional

from sqlalchemy import delete, exists, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from .errors import ConflictError, NotFoundError, StorageError
from .models import MAX_STOCK, Base, Product, ProductRow
from .storage import ProductStore


@contextmanager
def _storage_errors(action: str):
    try:
        yield
    except SQLAlchemyError as exc:
        raise StorageError(f"{action} failed: {exc}") from exc


class SqlProductStore(ProductStore):
    """Product store over SQLAlchemy's asyncio extension.

    Every call opens its own session. Writes run inside ``session.begin()``,
    which commits when the block exits cleanly and rolls back on any
    exception, cancellation included.
    """

    name = "sql"

    def __init__(self, engine: AsyncEngine):
        super().__init__()
        self.engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, url: str, echo: bool = False) -> "SqlProductStore":
        kwargs = {}
        if url.startswith("sqlite") and ":memory:" in url:
            # one shared connection, otherwise every checkout sees an empty database
            kwargs = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
        return cls(create_async_engine(url, echo=echo, **kwargs))

    async def create_schema(self) -> None:
        with _storage_errors("create schema"):
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()

    async def list_all(self) -> List[Product]:
        with _storage_errors("list products"):
            async with self._sessions() as session:
                rows = await session.scalars(select(ProductRow))
                return [Product.model_validate(r) for r in rows]

    async def get_by_id(self, product_id: str) -> Optional[Product]:
        with _storage_errors("get product"):
            async with self._sessions() as session:
                row = await session.get(ProductRow, product_id)
                return Product.model_validate(row) if row is not None else None

    async def exists(self, product_id: str) -> bool:
        with _storage_errors("check product"):
            async with self._sessions() as session:
                found = await session.scalar(select(exists().where(ProductRow.id == product_id)))
                return bool(found)

    async def insert(self, product: Product) -> None:
        with _storage_errors("insert product"):
            async with self._sessions() as session:
                try:
                    async with session.begin():
                        session.add(ProductRow(**product.model_dump()))
                except IntegrityError as exc:
                    raise ConflictError(product.id) from exc

    async def update(self, product: Product) -> None:
        values = product.model_dump(exclude={"id"})
        with _storage_errors("update product"):
            async with self._sessions() as session:
                async with session.begin():
                    result = await session.execute(
                        update(ProductRow).where(ProductRow.id == product.id).values(**values)
                    )
                    if result.rowcount == 0:
                        raise NotFoundError(product.id)

    async def delete(self, product_id: str) -> None:
        with _storage_errors("delete product"):
            async with self._sessions() as session:
                async with session.begin():
                    await session.execute(delete(ProductRow).where(ProductRow.id == product_id))

    async def _top_id(self) -> Optional[str]:
        with _storage_errors("read top id"):
            async with self._sessions() as session:
                return await session.scalar(
                    select(ProductRow.id).order_by(ProductRow.id.desc()).limit(1)
                )

    async def _apply_stock_delta(self, product_id: str, delta: int) -> Optional[int]:
        new_stock = ProductRow.stock_available + delta
        with _storage_errors("adjust stock"):
            async with self._sessions() as session:
                async with session.begin():
                    result = await session.execute(
                        update(ProductRow)
                        .where(ProductRow.id == product_id, new_stock >= 0, new_stock <= MAX_STOCK)
                        .values(stock_available=new_stock)
                        .returning(ProductRow.stock_available)
                        .execution_options(synchronize_session=False)
                    )
                    return result.scalar_one_or_none()
