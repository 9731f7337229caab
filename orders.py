"""
Checkout and order history.

Placing an order touches three aggregates (products, the new order, the
cart) without a multi-document transaction, so ``place_order`` runs as a
saga: stock is reserved with conditional decrements first, and every
reservation is released again if a later step fails.
"""
import logging
from typing import List, Optional, Tuple

from pymongo import DESCENDING, ReturnDocument

from auth import Principal
from cart import CartStore
from database import create_document, serialize_doc, to_object_id, utcnow
from errors import InsufficientStock, InvalidArgument, InvalidTransition, NotFound
from products import ProductStore
from schemas import Order, OrderItem, OrderOut, OrderStatus, PaymentMethod, ShippingAddress

logger = logging.getLogger(__name__)

# pending may be re-set to itself only to change the payment method
TRANSITIONS = {
    OrderStatus.pending.value: {OrderStatus.pending.value, OrderStatus.paid.value, OrderStatus.cancelled.value},
    OrderStatus.paid.value: set(),
    OrderStatus.cancelled.value: set(),
}


class OrderService:
    collection = "order"

    def __init__(self, db):
        self.db = db
        self.orders = db[self.collection]
        self.carts = CartStore(db)
        self.products = ProductStore(db)

    def place_order(self, principal: Principal, shipping_address: ShippingAddress, payment_method=PaymentMethod.cash) -> OrderOut:
        cart = self.carts.get(principal.id)
        if cart is None or not cart.items:
            raise InvalidArgument("Cart is empty")

        live = self.products.find_many([i.product_id for i in cart.items])
        items: List[OrderItem] = []
        for line in cart.items:
            product = live.get(line.product_id)
            if product is None:
                raise NotFound(f"Product {line.product_id} is no longer available")
            if line.quantity > product.stock:
                raise InsufficientStock(product.name)
            items.append(OrderItem(
                product_id=product.id,
                name=product.name,
                description=product.description,
                price=product.price,
                image=product.image or "",
                category=product.category,
                quantity=line.quantity,
            ))
        total = sum(i.price * i.quantity for i in items)

        reserved = self._reserve(items)
        order = Order(
            user_id=principal.id,
            items=items,
            total_amount=total,
            shipping_address=shipping_address,
            payment_method=payment_method,
            status=OrderStatus.pending,
        )
        try:
            order_id = create_document(self.db, self.collection, order)
        except Exception:
            self._release(reserved)
            raise

        self.carts.delete(principal.id)
        logger.info("order %s placed by %s: %d lines, total %.2f", order_id, principal.id, len(items), total)
        return self.get(principal.id, order_id)

    def _reserve(self, items: List[OrderItem]) -> List[OrderItem]:
        reserved = []
        try:
            for item in items:
                if not self.products.reserve_stock(item.product_id, item.quantity):
                    logger.warning("stock reservation failed for %s x%d", item.product_id, item.quantity)
                    raise InsufficientStock(item.name)
                reserved.append(item)
        except Exception:
            self._release(reserved)
            raise
        return reserved

    def _release(self, reserved: List[OrderItem]) -> None:
        for item in reserved:
            logger.warning("releasing %d of %s", item.quantity, item.product_id)
            self.products.release_stock(item.product_id, item.quantity)

    def list(self, user_id: str, page: int = 1, limit: int = 10) -> Tuple[List[OrderOut], int]:
        query = {"user_id": user_id}
        cursor = (
            self.orders.find(query)
            .sort([("created_at", DESCENDING)])
            .skip((page - 1) * limit)
            .limit(limit)
        )
        return [OrderOut(**serialize_doc(d)) for d in cursor], self.orders.count_documents(query)

    def get(self, user_id: str, order_id: str) -> OrderOut:
        doc = self.orders.find_one({"_id": to_object_id(order_id), "user_id": user_id})
        if not doc:
            raise NotFound("Order not found")
        return OrderOut(**serialize_doc(doc))

    def update_status(self, user_id: str, order_id: str, status, payment_method: Optional[PaymentMethod] = None) -> OrderOut:
        status = OrderStatus(status).value
        current = self.get(user_id, order_id)
        if status not in TRANSITIONS[current.status]:
            raise InvalidTransition(f"Cannot change order status from {current.status} to {status}")

        updates = {"status": status, "updated_at": utcnow()}
        if payment_method:
            updates["payment_method"] = PaymentMethod(payment_method).value
        # conditional on the status we validated against, so racing updates cannot both apply
        doc = self.orders.find_one_and_update(
            {"_id": to_object_id(order_id), "user_id": user_id, "status": current.status},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise InvalidTransition("Order status changed concurrently, reload and retry")
        if status != current.status:
            logger.info("order %s: %s -> %s", order_id, current.status, status)
        return OrderOut(**serialize_doc(doc))
