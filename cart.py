import logging
from typing import Optional

from database import utcnow
from errors import InsufficientStock, InvalidArgument, NotFound
from products import ProductStore
from schemas import Cart, CartLine, CartView

logger = logging.getLogger(__name__)


class CartStore:
    """Carts keyed by principal id.

    ``get`` returning None (no cart) and a Cart with no items (empty cart)
    are different states: the first only turns into the second on ``create``.
    """

    collection = "cart"

    def __init__(self, db):
        self.carts = db[self.collection]

    def get(self, user_id: str) -> Optional[Cart]:
        doc = self.carts.find_one({"user_id": user_id}, {"_id": 0})
        return Cart(**doc) if doc else None

    def create(self, user_id: str) -> Cart:
        now = utcnow()
        cart = Cart(user_id=user_id, created_at=now, updated_at=now)
        self.carts.insert_one(cart.model_dump())
        return cart

    def save(self, cart: Cart) -> None:
        cart.updated_at = utcnow()
        self.carts.replace_one({"user_id": cart.user_id}, cart.model_dump())

    def delete(self, user_id: str) -> bool:
        return self.carts.delete_one({"user_id": user_id}).deleted_count == 1


class CartService:
    def __init__(self, db):
        self.carts = CartStore(db)
        self.products = ProductStore(db)

    def view(self, user_id: str) -> CartView:
        cart = self.carts.get(user_id)
        if cart is None or not cart.items:
            return CartView()
        live = self.products.find_many([i.product_id for i in cart.items])
        lines = [
            CartLine(product=live[i.product_id], quantity=i.quantity)
            for i in cart.items
            if i.product_id in live
        ]
        return CartView(
            items=lines,
            total_amount=sum(line.product.price * line.quantity for line in lines),
            total_items=sum(line.quantity for line in lines),
        )

    def add(self, user_id: str, product_id: str, quantity: int = 1) -> CartView:
        if quantity < 1:
            raise InvalidArgument("Quantity must be at least 1")
        product = self.products.get(product_id)
        cart = self.carts.get(user_id)
        wanted = quantity + (cart.quantity_of(product_id) if cart else 0)
        if wanted > product.stock:
            raise InsufficientStock(product.name)
        if cart is None:
            cart = self.carts.create(user_id)
        cart.add_line(product_id, quantity)
        self.carts.save(cart)
        logger.debug("cart %s: %s x%d", user_id, product_id, wanted)
        return self.view(user_id)

    def set_quantity(self, user_id: str, product_id: str, quantity: int) -> CartView:
        if quantity < 1:
            raise InvalidArgument("Quantity must be at least 1")
        product = self.products.get(product_id)
        cart = self.carts.get(user_id)
        if cart is None:
            raise NotFound("Cart not found")
        if cart.find_line(product_id) is None:
            raise NotFound("Product not found in cart")
        if quantity > product.stock:
            raise InsufficientStock(product.name)
        cart.set_quantity(product_id, quantity)
        self.carts.save(cart)
        return self.view(user_id)

    def remove(self, user_id: str, product_id: str) -> CartView:
        cart = self.carts.get(user_id)
        if cart is None:
            raise NotFound("Cart not found")
        if cart.remove_line(product_id):
            self.carts.save(cart)
        return self.view(user_id)
