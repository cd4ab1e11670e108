import uuid
from datetime import datetime, timezone
from typing import Callable, List

from database import JsonCollection, parse_records
from errors import NotFoundFailure, ValidationFailure, store_operation
from logger import build_logger
from schemas import Cart, CartItem

logger = build_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _check_cart_id(cart_id: str) -> None:
    try:
        uuid.UUID(str(cart_id))
    except ValueError:
        raise ValidationFailure(
            f"Invalid cart id: {cart_id}", [{"field": "cid", "message": "must be a valid UUID"}]
        ) from None


def _check_quantity(quantity) -> None:
    # bool is an int subclass, but True is not a quantity
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationFailure(
            f"Invalid quantity: {quantity!r}",
            [{"field": "quantity", "message": "must be a positive integer"}],
        )


def _check_product_id(product_id) -> None:
    if not isinstance(product_id, str) or not product_id.strip():
        raise ValidationFailure(
            f"Invalid product id: {product_id!r}",
            [{"field": "pid", "message": "must be a non-empty string"}],
        )


class CartStore:
    """
    Carts kept in one JSON collection file.

    Line items only hold a product id and a quantity; the product id is not
    checked against the product catalog.
    """

    def __init__(self, collection: JsonCollection):
        self.collection = collection

    def _load(self) -> List[Cart]:
        return parse_records(Cart, self.collection.read(), "cart")

    def _save(self, carts: List[Cart]) -> None:
        self.collection.write([c.model_dump(mode="json", by_alias=True) for c in carts])

    @staticmethod
    def _find(carts: List[Cart], cart_id: str) -> Cart:
        for cart in carts:
            if cart.id == cart_id:
                return cart
        raise NotFoundFailure("Cart", cart_id)

    def _mutate(self, cart_id: str, change: Callable[[Cart], None]) -> Cart:
        """Read-modify-write one cart while holding the collection lock."""
        with self.collection.lock:
            carts = self._load()
            cart = self._find(carts, cart_id)
            change(cart)
            cart.updated_at = _now()
            self._save(carts)
        return cart

    @store_operation(logger)
    def create(self) -> Cart:
        now = _now()
        cart = Cart(id=str(uuid.uuid4()), products=[], created_at=now, updated_at=now)
        with self.collection.lock:
            carts = self._load()
            carts.append(cart)
            self._save(carts)
        logger.info(f"Cart {cart.id} created")
        return cart

    @store_operation(logger)
    def get_by_id(self, cart_id: str) -> Cart:
        _check_cart_id(cart_id)
        with self.collection.lock:
            carts = self._load()
        return self._find(carts, cart_id)

    @store_operation(logger)
    def add_product(self, cart_id: str, product_id: str, quantity: int = 1) -> Cart:
        _check_cart_id(cart_id)
        _check_product_id(product_id)
        _check_quantity(quantity)

        def change(cart: Cart) -> None:
            item = cart.find_item(product_id)
            if item:
                item.quantity += quantity
            else:
                cart.products.append(CartItem(product=product_id, quantity=quantity))

        cart = self._mutate(cart_id, change)
        logger.info(f"Cart {cart_id}: added {quantity} x {product_id}")
        return cart

    @store_operation(logger)
    def update_quantity(self, cart_id: str, product_id: str, quantity: int) -> Cart:
        _check_cart_id(cart_id)
        _check_product_id(product_id)
        _check_quantity(quantity)

        def change(cart: Cart) -> None:
            item = cart.find_item(product_id)
            if item is None:
                raise NotFoundFailure("Cart item", product_id)
            item.quantity = quantity

        cart = self._mutate(cart_id, change)
        logger.info(f"Cart {cart_id}: quantity of {product_id} set to {quantity}")
        return cart

    @store_operation(logger)
    def remove_product(self, cart_id: str, product_id: str) -> Cart:
        _check_cart_id(cart_id)
        _check_product_id(product_id)

        def change(cart: Cart) -> None:
            item = cart.find_item(product_id)
            if item is None:
                raise NotFoundFailure("Cart item", product_id)
            cart.products.remove(item)

        cart = self._mutate(cart_id, change)
        logger.info(f"Cart {cart_id}: removed {product_id}")
        return cart

    @store_operation(logger)
    def clear(self, cart_id: str) -> Cart:
        _check_cart_id(cart_id)

        def change(cart: Cart) -> None:
            cart.products.clear()

        cart = self._mutate(cart_id, change)
        logger.info(f"Cart {cart_id} cleared")
        return cart
