"""Pydantic schemas for catalog listing requests and results."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from marketplace_api.errors import ValidationError


class ProductRead(BaseModel):
    """Catalog item as exposed to API consumers."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str = Field(..., description="Opaque, stable product identifier")
    title: str
    price: Decimal = Field(..., ge=0)
    description: str | None = None
    image: str | None = Field(None, description="Image reference (URL)")
    created_at: datetime | None = None


class ListingRequest(BaseModel):
    """Immutable description of one catalog page the caller wants to see."""

    model_config = ConfigDict(frozen=True)

    search_term: str = Field("", description="Free-text title filter")
    page: int = Field(1, ge=1, description="One-based page number")
    page_size: int = Field(..., gt=0, description="Maximum items per page")

    @classmethod
    def build(
        cls, *, search_term: str | None, page: int, page_size: int
    ) -> "ListingRequest":
        """Construct a request, reporting bad input as :class:`ValidationError`."""

        try:
            return cls(search_term=search_term or "", page=page, page_size=page_size)
        except PydanticValidationError as exc:
            fields = ", ".join(
                ".".join(str(part) for part in error["loc"]) for error in exc.errors()
            )
            raise ValidationError(
                "Invalid listing request", detail=f"Invalid field(s): {fields}"
            ) from exc


class ListingResult(BaseModel):
    """One page of a search, with enough metadata to render pagination."""

    model_config = ConfigDict(frozen=True)

    products: list[ProductRead] = Field(default_factory=list)
    total: int = Field(..., ge=0, description="Number of products matching the search")
    total_pages: int = Field(..., ge=0)
    current_page: int = Field(..., ge=1)
    page_size: int = Field(..., gt=0)

    @model_validator(mode="after")
    def _check_page_bounds(self) -> "ListingResult":
        if len(self.products) > self.page_size:
            raise ValueError("A listing page cannot hold more items than its page size")
        if self.current_page > max(self.total_pages, 1) and self.products:
            raise ValueError("Pages beyond total_pages must be empty")
        return self


__all__ = ["ListingRequest", "ListingResult", "ProductRead"]
