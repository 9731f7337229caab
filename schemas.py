"""
Database Schemas for the Fashion Storefront

Each Pydantic model represents a collection in MongoDB.
Collection name is the lowercase of the class name.

Documents are stored with snake_case keys; the JSON API speaks camelCase
(``totalAmount``, ``shippingAddress``...) through the aliases on ApiModel.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )


class Category(str, Enum):
    shirts = "Shirts"
    pants = "Pants"
    shoes = "Shoes"
    accessories = "Accessories"
    handbags = "Handbags"
    jewelry = "Jewelry"


class PaymentMethod(str, Enum):
    cash = "cash"
    card = "card"
    bank_transfer = "bank_transfer"


class OrderStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    cancelled = "cancelled"


def _not_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


# Products

class ProductIn(ApiModel):
    name: str = Field(..., description="Display name")
    description: str = Field(...)
    price: float = Field(..., ge=0)
    image: Optional[str] = Field("", description="Image URL")
    category: Category
    stock: int = Field(..., ge=0)

    @field_validator("name", "description")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return _not_blank(value)


class Product(ProductIn):
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProductOut(Product):
    id: str


# Cart

class CartItem(ApiModel):
    product_id: str
    quantity: int = Field(..., ge=1)


class Cart(ApiModel):
    """One per principal; ``items`` never holds the same product twice."""

    user_id: str
    items: List[CartItem] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def find_line(self, product_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def quantity_of(self, product_id: str) -> int:
        line = self.find_line(product_id)
        return line.quantity if line else 0

    def add_line(self, product_id: str, quantity: int) -> CartItem:
        line = self.find_line(product_id)
        if line:
            line.quantity += quantity
        else:
            line = CartItem(product_id=product_id, quantity=quantity)
            self.items.append(line)
        return line

    def set_quantity(self, product_id: str, quantity: int) -> bool:
        line = self.find_line(product_id)
        if line is None:
            return False
        line.quantity = quantity
        return True

    def remove_line(self, product_id: str) -> bool:
        before = len(self.items)
        self.items = [i for i in self.items if i.product_id != product_id]
        return len(self.items) != before


class CartLine(ApiModel):
    product: ProductOut
    quantity: int


class CartView(ApiModel):
    items: List[CartLine] = Field(default_factory=list)
    total_amount: float = 0
    total_items: int = 0


class AddToCart(ApiModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=1)


class SetCartQuantity(ApiModel):
    quantity: int = Field(..., ge=1)


# Orders

class ShippingAddress(ApiModel):
    full_name: str
    phone: str
    address: str
    city: str
    postal_code: str

    @field_validator("full_name", "phone", "address", "city", "postal_code")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return _not_blank(value)


class OrderItem(ApiModel):
    """Product fields frozen at checkout time."""

    product_id: str
    name: str
    description: str = ""
    price: float = Field(..., ge=0)
    image: str = ""
    category: Category
    quantity: int = Field(..., ge=1)


class Order(ApiModel):
    user_id: str
    items: List[OrderItem]
    total_amount: float = Field(..., ge=0)
    shipping_address: ShippingAddress
    payment_method: PaymentMethod = PaymentMethod.cash
    status: OrderStatus = OrderStatus.pending
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderOut(Order):
    id: str


class OrderCreate(ApiModel):
    shipping_address: ShippingAddress
    payment_method: PaymentMethod = PaymentMethod.cash


class OrderUpdate(ApiModel):
    status: OrderStatus
    payment_method: Optional[PaymentMethod] = None


# Users

class User(BaseModel):
    email: EmailStr = Field(..., description="Email address")
    password_hash: str = Field(..., description="Hashed password")
    created_at: Optional[datetime] = None


class Credentials(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class Registration(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)


# Paginated responses

class ProductPage(ApiModel):
    products: List[ProductOut]
    total: int
    total_pages: int
    current_page: int


class OrderPage(ApiModel):
    orders: List[OrderOut]
    total: int
    total_pages: int
    current_page: int
