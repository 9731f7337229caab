import logging
import math
import os
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError

import config
import database
from auth import (
    Principal,
    clear_auth_cookie,
    get_current_user,
    get_password_hash,
    set_auth_cookie,
    token_for,
    verify_password,
)
from cart import CartService
from database import create_document, get_db
from errors import InvalidArgument, StoreError, Unauthenticated
from orders import OrderService
from products import ProductStore
from schemas import (
    AddToCart,
    CartView,
    Credentials,
    OrderCreate,
    OrderOut,
    OrderPage,
    OrderUpdate,
    ProductIn,
    ProductOut,
    ProductPage,
    Registration,
    SetCartQuantity,
    User,
)

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger("storefront")

app = FastAPI(title="Fashion Storefront API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error translation
@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.on_event("startup")
def on_startup():
    if database.db is not None:
        database.ensure_indexes(database.db)


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


@app.get("/")
def read_root():
    return {"message": "Fashion storefront API is running"}


@app.get("/health")
def health():
    return {"ok": True}


# Auth
@app.post("/auth/register", status_code=201)
def register(payload: Registration, response: Response, db=Depends(get_db)):
    if db["user"].find_one({"email": payload.email}):
        raise InvalidArgument("User already exists")
    user = User(email=payload.email, password_hash=get_password_hash(payload.password))
    try:
        user_id = create_document(db, "user", user)
    except DuplicateKeyError:
        raise InvalidArgument("User already exists")
    principal = Principal(id=user_id, email=user.email)
    set_auth_cookie(response, token_for(principal))
    logger.info("user %s registered", user_id)
    return {"message": "User created successfully", "user": principal.model_dump()}


@app.post("/auth/login")
def login(payload: Credentials, response: Response, db=Depends(get_db)):
    user = db["user"].find_one({"email": payload.email})
    if not user or not verify_password(payload.password, user.get("password_hash", "")):
        raise Unauthenticated("Invalid credentials")
    principal = Principal(id=str(user["_id"]), email=user["email"])
    token = token_for(principal)
    set_auth_cookie(response, token)
    logger.info("user %s logged in", principal.id)
    return {
        "message": "Login successful",
        "user": principal.model_dump(),
        "accessToken": token,
        "tokenType": "bearer",
    }


@app.get("/auth/me")
def me(current: Principal = Depends(get_current_user)):
    return {"user": current.model_dump()}


@app.post("/auth/logout")
def logout(response: Response):
    clear_auth_cookie(response)
    return {"message": "Logged out"}


# Catalog
@app.get("/products", response_model=ProductPage)
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    category: Optional[str] = None,
    db=Depends(get_db),
):
    products, total = ProductStore(db).list(page=page, limit=limit, search=search, category=category)
    return ProductPage(products=products, total=total, total_pages=page_count(total, limit), current_page=page)


@app.post("/products", response_model=ProductOut, status_code=201)
def create_product(payload: ProductIn, current: Principal = Depends(get_current_user), db=Depends(get_db)):
    return ProductStore(db).create(payload, current)


@app.get("/products/{product_id}", response_model=ProductOut)
def get_product(product_id: str, db=Depends(get_db)):
    return ProductStore(db).get(product_id)


@app.put("/products/{product_id}", response_model=ProductOut)
def update_product(product_id: str, payload: ProductIn, current: Principal = Depends(get_current_user), db=Depends(get_db)):
    return ProductStore(db).update(product_id, payload, current)


@app.delete("/products/{product_id}", status_code=204)
def delete_product(product_id: str, current: Principal = Depends(get_current_user), db=Depends(get_db)):
    ProductStore(db).delete(product_id, current)
    return Response(status_code=204)


# Cart
@app.get("/cart", response_model=CartView)
def read_cart(current: Principal = Depends(get_current_user), db=Depends(get_db)):
    return CartService(db).view(current.id)


@app.post("/cart", response_model=CartView)
def add_to_cart(payload: AddToCart, current: Principal = Depends(get_current_user), db=Depends(get_db)):
    return CartService(db).add(current.id, payload.product_id, payload.quantity)


@app.put("/cart/{product_id}", response_model=CartView)
def update_cart_item(product_id: str, payload: SetCartQuantity, current: Principal = Depends(get_current_user), db=Depends(get_db)):
    return CartService(db).set_quantity(current.id, product_id, payload.quantity)


@app.delete("/cart/{product_id}", response_model=CartView)
def remove_cart_item(product_id: str, current: Principal = Depends(get_current_user), db=Depends(get_db)):
    return CartService(db).remove(current.id, product_id)


# Orders
@app.get("/orders", response_model=OrderPage)
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current: Principal = Depends(get_current_user),
    db=Depends(get_db),
):
    orders, total = OrderService(db).list(current.id, page=page, limit=limit)
    return OrderPage(orders=orders, total=total, total_pages=page_count(total, limit), current_page=page)


@app.post("/orders", response_model=OrderOut, status_code=201)
def create_order(payload: OrderCreate, current: Principal = Depends(get_current_user), db=Depends(get_db)):
    return OrderService(db).place_order(current, payload.shipping_address, payload.payment_method)


@app.get("/orders/{order_id}", response_model=OrderOut)
def get_order(order_id: str, current: Principal = Depends(get_current_user), db=Depends(get_db)):
    return OrderService(db).get(current.id, order_id)


@app.put("/orders/{order_id}", response_model=OrderOut)
def update_order(order_id: str, payload: OrderUpdate, current: Principal = Depends(get_current_user), db=Depends(get_db)):
    return OrderService(db).update_status(current.id, order_id, payload.status, payload.payment_method)


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": None,
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }
    try:
        if database.db is not None:
            response["database"] = "✅ Available"
            response["database_url"] = "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set"
            response["database_name"] = "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set"
            try:
                collections = database.db.list_collection_names()
                response["collections"] = collections[:10]
                response["connection_status"] = "Connected"
                response["database"] = "✅ Connected & Working"
            except Exception as e:
                response["database"] = f"⚠️ Connected but Error: {str(e)[:50]}"
    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:50]}"
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
