"""
Schemas for the Shop API

Each model either describes a record stored in a collection file
(Product, Cart) or an input/output shape used by the stores and routes.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# Products
class ProductIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=3, max_length=100, description="Product title")
    description: str = Field(..., min_length=10, max_length=500, description="Product description")
    price: float = Field(..., ge=0, strict=True, allow_inf_nan=False, description="Unit price")
    stock: int = Field(..., ge=0, strict=True, description="Units available")
    category: str = Field(..., min_length=2, max_length=50, description="Product category")
    code: str = Field(..., min_length=3, max_length=20, description="Unique product code")
    status: bool = Field(True, description="Whether the product is active")
    thumbnails: List[str] = Field(default_factory=list, description="Image paths or URLs")


class ProductUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, min_length=10, max_length=500)
    price: Optional[float] = Field(None, ge=0, strict=True, allow_inf_nan=False)
    stock: Optional[int] = Field(None, ge=0, strict=True)
    category: Optional[str] = Field(None, min_length=2, max_length=50)
    code: Optional[str] = Field(None, min_length=3, max_length=20)
    status: Optional[bool] = None
    thumbnails: Optional[List[str]] = None


class Product(ProductIn):
    id: str


class ProductFilter(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    category: Optional[str] = None
    min_price: Optional[float] = Field(None, alias="minPrice", ge=0, allow_inf_nan=False)
    max_price: Optional[float] = Field(None, alias="maxPrice", ge=0, allow_inf_nan=False)
    sort: Optional[Literal["asc", "desc"]] = None
    page: int = Field(1, ge=1)
    limit: Optional[int] = Field(None, ge=0, description="Page size, all matches when absent")


class ProductPage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[Product]
    total: int
    page: int
    limit: int
    total_pages: int = Field(..., alias="totalPages")


class DeleteConfirmation(BaseModel):
    deleted: bool = True
    id: str


# Carts
class CartItem(BaseModel):
    product: str
    quantity: int = Field(..., ge=1)


class Cart(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    products: List[CartItem] = Field(default_factory=list)
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    def find_item(self, product_id: str) -> Optional[CartItem]:
        for item in self.products:
            if item.product == product_id:
                return item
        return None


class QuantityIn(BaseModel):
    quantity: int = 1


class QuantityUpdate(BaseModel):
    quantity: int
