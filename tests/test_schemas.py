import pytest
from pydantic import ValidationError

from schemas import Cart, Order, OrderItem, ProductOut, ShippingAddress

ADDRESS = ShippingAddress(full_name="A", phone="1", address="x", city="y", postal_code="z")


def test_order_wire_round_trip_keeps_snapshots():
    order = Order(
        user_id="u1",
        items=[
            OrderItem(product_id="p1", name="Shirt", description="d", price=12.5, image="i", category="Shirts", quantity=2),
            OrderItem(product_id="p2", name="Ring", price=99.0, category="Jewelry", quantity=1),
        ],
        total_amount=124.0,
        shipping_address=ADDRESS,
        payment_method="card",
    )
    wire = order.model_dump(by_alias=True)
    assert wire["totalAmount"] == 124.0
    assert wire["shippingAddress"]["postalCode"] == "z"
    assert wire["items"][0]["productId"] == "p1"
    assert Order.model_validate(wire) == order
    assert Order.model_validate(order.model_dump()) == order


def test_product_and_cart_round_trip():
    product = ProductOut(id="p1", name="Shoe", description="d", price=1.0, category="Shoes", stock=3, created_by="u1")
    assert ProductOut.model_validate(product.model_dump(by_alias=True)) == product
    cart = Cart(user_id="u1")
    cart.add_line("p1", 2)
    assert Cart.model_validate_json(cart.model_dump_json(by_alias=True)) == cart


def test_cart_lines_merge_and_remove():
    cart = Cart(user_id="u1")
    cart.add_line("p1", 1)
    cart.add_line("p1", 2)
    cart.add_line("p2", 1)
    assert [(i.product_id, i.quantity) for i in cart.items] == [("p1", 3), ("p2", 1)]
    assert cart.set_quantity("p1", 5)
    assert not cart.set_quantity("p3", 1)
    assert cart.remove_line("p1")
    assert not cart.remove_line("p1")
    assert cart.quantity_of("p2") == 1
    assert cart.quantity_of("p1") == 0


def test_defaults_and_enums():
    order = Order(user_id="u", items=[], total_amount=0, shipping_address=ADDRESS)
    assert order.status == "pending"
    assert order.payment_method == "cash"
    with pytest.raises(ValidationError):
        Order(user_id="u", items=[], total_amount=0, shipping_address=ADDRESS, status="shipped")


def test_blank_address_fields_rejected():
    with pytest.raises(ValidationError):
        ShippingAddress(full_name=" ", phone="1", address="x", city="y", postal_code="z")
