import math
import uuid
from typing import Any, List, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from database import JsonCollection, parse_records
from errors import ConflictFailure, NotFoundFailure, store_operation, validation_failure
from logger import build_logger
from schemas import DeleteConfirmation, Product, ProductFilter, ProductIn, ProductPage, ProductUpdate

logger = build_logger(__name__)

Payload = Union[BaseModel, Mapping[str, Any]]


def _as_dict(payload: Optional[Payload]) -> dict:
    if payload is None:
        return {}
    if isinstance(payload, BaseModel):
        return payload.model_dump(exclude_unset=True, by_alias=True)
    return dict(payload)


class ProductStore:
    """Products kept in one JSON collection file, with a unique `code` per product."""

    def __init__(self, collection: JsonCollection):
        self.collection = collection

    def _load(self) -> List[Product]:
        return parse_records(Product, self.collection.read(), "product")

    def _save(self, products: List[Product]) -> None:
        self.collection.write([p.model_dump(mode="json") for p in products])

    @staticmethod
    def _find_index(products: List[Product], product_id: str) -> int:
        for index, product in enumerate(products):
            if product.id == product_id:
                return index
        raise NotFoundFailure("Product", product_id)

    @store_operation(logger)
    def list(self, filters: Optional[Payload] = None) -> ProductPage:
        try:
            options = ProductFilter.model_validate(_as_dict(filters))
        except ValidationError as e:
            raise validation_failure("Invalid product filter", e) from e

        with self.collection.lock:
            products = self._load()

        if options.category:
            needle = options.category.lower()
            products = [p for p in products if needle in p.category.lower()]
        if options.min_price is not None:
            products = [p for p in products if p.price >= options.min_price]
        if options.max_price is not None:
            products = [p for p in products if p.price <= options.max_price]
        if options.sort:
            products = sorted(products, key=lambda p: p.price, reverse=options.sort == "desc")

        total = len(products)
        limit = total if options.limit is None else options.limit
        if limit == 0:
            # an explicit limit of zero asks for no rows
            items, total_pages = [], 0
        else:
            start = (options.page - 1) * limit
            items = products[start:start + limit]
            total_pages = math.ceil(total / limit)

        return ProductPage(items=items, total=total, page=options.page, limit=limit, total_pages=total_pages)

    @store_operation(logger)
    def get_by_id(self, product_id: str) -> Product:
        with self.collection.lock:
            products = self._load()
        return products[self._find_index(products, product_id)]

    @store_operation(logger)
    def add(self, draft: Payload) -> Product:
        try:
            data = ProductIn.model_validate(_as_dict(draft))
        except ValidationError as e:
            raise validation_failure("Invalid product", e) from e

        with self.collection.lock:
            products = self._load()
            if any(p.code == data.code for p in products):
                raise ConflictFailure(f"Product code already exists: {data.code}")

            product = Product(id=str(uuid.uuid4()), **data.model_dump())
            products.append(product)
            self._save(products)

        logger.info(f"Product {product.id} created with code {product.code}")
        return product

    @store_operation(logger)
    def update(self, product_id: str, partial: Optional[Payload] = None) -> Product:
        raw = _as_dict(partial)
        raw.pop("id", None)
        try:
            changes = ProductUpdate.model_validate(raw)
        except ValidationError as e:
            raise validation_failure("Invalid product update", e) from e
        # explicit nulls count as "not provided"
        updates = {k: v for k, v in changes.model_dump(exclude_unset=True).items() if v is not None}

        with self.collection.lock:
            products = self._load()
            index = self._find_index(products, product_id)

            code = updates.get("code")
            if code is not None and any(p.code == code and p.id != product_id for p in products):
                raise ConflictFailure(f"Product code already exists: {code}")

            updated = products[index].model_copy(update=updates)
            products[index] = updated
            self._save(products)

        if updates:
            logger.info(f"Product {product_id} updated: {', '.join(sorted(updates))}")
        return updated

    @store_operation(logger)
    def delete(self, product_id: str) -> DeleteConfirmation:
        with self.collection.lock:
            products = self._load()
            index = self._find_index(products, product_id)
            del products[index]
            self._save(products)

        logger.info(f"Product {product_id} deleted")
        return DeleteConfirmation(id=product_id)
