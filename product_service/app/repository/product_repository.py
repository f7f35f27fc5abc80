"""Product repository for catalog store operations"""

import uuid
from typing import Iterable, List

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConditionalCheckFailedError, NotFoundError
from ..core.resilience import run_with_timeout
from ..models.product import Product
from ..schemas.product import ProductCreate, ProductRecord, ProductUpdate

DEFAULT_STORE_TIMEOUT = 5.0


class ProductRepository:
    """Repository for product catalog operations.

    Every method returns ``ProductRecord`` values, never ORM rows, and every
    store call is bounded by ``timeout`` seconds.
    """

    def __init__(self, db: AsyncSession, timeout: float = DEFAULT_STORE_TIMEOUT):
        self.db = db
        self.timeout = timeout

    async def _execute(self, statement, operation: str):
        try:
            return await run_with_timeout(
                self.db.execute(statement), self.timeout, operation
            )
        except Exception:
            await self.db.rollback()
            raise

    async def _commit(self, operation: str) -> None:
        try:
            await run_with_timeout(self.db.commit(), self.timeout, operation)
        except Exception:
            await self.db.rollback()
            raise

    async def list_products(self) -> List[ProductRecord]:
        """Full scan of the catalog; an empty catalog yields an empty list"""
        result = await self._execute(select(Product), "list_products")
        return [ProductRecord.model_validate(p) for p in result.scalars().all()]

    async def get_product_by_id(self, product_id: str) -> ProductRecord:
        """Get product by ID"""
        result = await self._execute(
            select(Product).where(Product.id == product_id), "get_product_by_id"
        )
        product = result.scalar_one_or_none()
        if product is None:
            raise NotFoundError("Product", product_id)
        return ProductRecord.model_validate(product)

    async def get_products_by_ids(self, product_ids: Iterable[str]) -> List[ProductRecord]:
        """Batch lookup returning only the products that exist, in no particular order"""
        ids = set(product_ids)
        if not ids:
            return []

        result = await self._execute(
            select(Product).where(Product.id.in_(ids)), "get_products_by_ids"
        )
        return [ProductRecord.model_validate(p) for p in result.scalars().all()]

    async def create_product(self, product_data: ProductCreate) -> ProductRecord:
        """Create a new product under a freshly generated ID"""
        product = Product(
            id=str(uuid.uuid4()),
            name=product_data.name,
            code=product_data.code,
            price=product_data.price,
            model=product_data.model,
            url=product_data.url,
        )

        self.db.add(product)
        await self._commit("create_product")
        return ProductRecord.model_validate(product)

    async def update_product(
        self, product_id: str, product_data: ProductUpdate
    ) -> ProductRecord:
        """Replace all mutable fields of an existing product.

        The existence condition is part of the UPDATE statement itself, so a
        missing ID never turns into an insert.
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(**product_data.model_dump())
            .returning(Product)
            .execution_options(populate_existing=True)
        )
        return await self._conditional_write(stmt, product_id, "update_product")

    async def delete_product(self, product_id: str) -> ProductRecord:
        """Delete a product in one conditional statement, returning its last stored state"""
        stmt = delete(Product).where(Product.id == product_id).returning(Product)
        return await self._conditional_write(stmt, product_id, "delete_product")

    async def _conditional_write(self, stmt, product_id: str, operation: str) -> ProductRecord:
        result = await self._execute(stmt, operation)
        product = result.scalar_one_or_none()
        if product is None:
            await self.db.rollback()
            raise ConditionalCheckFailedError("Product", product_id)

        record = ProductRecord.model_validate(product)
        await self._commit(operation)
        return record
