"""Product fetch and admin API endpoints"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, status

from ...core.exceptions import NotFoundError, TransientError
from ...repository.product_repository import ProductRepository
from ...schemas.product import ProductCreate, ProductRecord, ProductUpdate
from ...utils.logging import setup_product_logging as setup_logging
from ..dependencies import CorrelationIdDep, ProductRepositoryDep

logger = setup_logging("products_api")
router = APIRouter(prefix="/products")


def _unavailable(e: TransientError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=e.message,
        headers={"Retry-After": "1"},
    )


@router.get("/", response_model=List[ProductRecord])
async def list_products(repository: ProductRepository = ProductRepositoryDep):
    """List the whole catalog"""
    try:
        return await repository.list_products()
    except TransientError as e:
        raise _unavailable(e)


@router.get("/{product_id}", response_model=ProductRecord)
async def get_product(
    product_id: str, repository: ProductRepository = ProductRepositoryDep
):
    """Get product details by ID"""
    try:
        return await repository.get_product_by_id(product_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except TransientError as e:
        raise _unavailable(e)


@router.post("/", response_model=ProductRecord, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    correlation_id: Optional[str] = CorrelationIdDep,
    repository: ProductRepository = ProductRepositoryDep,
):
    """Create a new product"""
    try:
        product = await repository.create_product(product_data)
    except TransientError as e:
        raise _unavailable(e)

    logger.info(
        "Product created",
        extra={"product_id": product.id, "correlation_id": correlation_id},
    )
    return product


@router.put("/{product_id}", response_model=ProductRecord)
async def update_product(
    product_id: str,
    product_data: ProductUpdate,
    correlation_id: Optional[str] = CorrelationIdDep,
    repository: ProductRepository = ProductRepositoryDep,
):
    """Replace an existing product"""
    try:
        product = await repository.update_product(product_id, product_data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except TransientError as e:
        raise _unavailable(e)

    logger.info(
        "Product updated",
        extra={"product_id": product_id, "correlation_id": correlation_id},
    )
    return product


@router.delete("/{product_id}", response_model=ProductRecord)
async def delete_product(
    product_id: str,
    correlation_id: Optional[str] = CorrelationIdDep,
    repository: ProductRepository = ProductRepositoryDep,
):
    """Delete a product and return its final state"""
    try:
        product = await repository.delete_product(product_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except TransientError as e:
        raise _unavailable(e)

    logger.info(
        "Product deleted",
        extra={"product_id": product_id, "correlation_id": correlation_id},
    )
    return product
