from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProductBase(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, description="Product name (required)")
    code: str = Field(..., min_length=1, description="Product code (required)")
    price: Decimal = Field(
        ..., ge=0, max_digits=10, decimal_places=2, description="Unit price (non-negative)"
    )
    model: str = Field(..., description="Product model")
    url: str = Field(..., description="Product page URL")

    @field_validator("name", "code")
    @classmethod
    def validate_not_blank(cls, v, info):
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} cannot be empty or whitespace only")
        return v.strip()


class ProductCreate(ProductBase):
    # Accepted so clients can round-trip records; always replaced on create
    id: Optional[str] = None


class ProductUpdate(ProductBase):
    """Full replacement of every mutable field."""

    pass


class ProductRecord(BaseModel):
    """Typed view of a catalog row; the only shape leaving the repository."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    name: str
    code: str
    price: Decimal
    model: str
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class ProductListResponse(BaseModel):
    products: List[ProductRecord]
    total: int
