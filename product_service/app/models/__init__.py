"""Catalog store models."""

from .base import ProductServiceBase, ProductServiceBaseModel, catalog_now
from .product import Product

__all__ = ["ProductServiceBase", "ProductServiceBaseModel", "Product", "catalog_now"]
