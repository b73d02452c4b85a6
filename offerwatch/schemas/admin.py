"""Schemas for import template administration and wishlist endpoints."""

from datetime import datetime

import httpx
from pydantic import BaseModel, Field, field_validator

from offerwatch.errors import SchemaError
from offerwatch.services.field_mapper import validate_mapping_schema
from offerwatch.services.records import WishlistCriterion


def _check_source_url(v: str) -> str:
    try:
        url = httpx.URL(v)
    except httpx.InvalidURL as e:
        raise ValueError(f"Invalid source URL: {e}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise ValueError("Source URL must be an absolute http(s) URL")
    return v


class TemplateIn(BaseModel):
    """Create/update payload for an import template."""

    name: str = Field(min_length=1, max_length=200)
    source_url: str = Field(min_length=1)
    mapping_schema: str
    is_active: bool = True

    @field_validator("source_url")
    @classmethod
    def _validate_source_url(cls, v: str) -> str:
        return _check_source_url(v)

    @field_validator("mapping_schema")
    @classmethod
    def _validate_mapping_schema(cls, v: str) -> str:
        # pydantic only collects ValueError/AssertionError
        try:
            validate_mapping_schema(v)
        except SchemaError as e:
            raise ValueError(str(e)) from e
        return v


class TemplateOut(BaseModel):
    id: int
    name: str
    source_url: str
    mapping_schema: str
    is_active: bool
    last_run_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class SourcePreviewRequest(BaseModel):
    source_url: str = Field(min_length=1)
    mapping_schema: str | None = None

    @field_validator("source_url")
    @classmethod
    def _validate_source_url(cls, v: str) -> str:
        return _check_source_url(v)


class SourcePreviewResponse(BaseModel):
    """First mapped offers of a source document (or raw elements without schema)."""

    is_array: bool
    total_elements: int
    offers: list[dict] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    sample: list = Field(default_factory=list)


class RunSummaryOut(BaseModel):
    attempted: int
    succeeded: int
    emitted: int


class WishlistIn(BaseModel):
    telegram_id: int
    product_name: str = Field(min_length=1)
    target_price: float | None = Field(default=None, gt=0)
    discount_percentage: int | None = Field(default=None, ge=1, le=100)


class WishlistOut(BaseModel):
    id: int
    telegram_id: int
    product_name: str
    target_price: float | None = None
    discount_percentage: int | None = None
    created_at: datetime | None = None

    @classmethod
    def from_criterion(cls, c: WishlistCriterion) -> "WishlistOut":
        return cls(
            id=c.id,
            telegram_id=c.telegram_id,
            product_name=c.product_name,
            target_price=c.target_price,
            discount_percentage=c.discount_percentage,
            created_at=c.created_at,
        )
