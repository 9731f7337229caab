import logging
import re
from typing import List, Optional, Tuple

from pymongo import DESCENDING, ReturnDocument

from auth import Principal
from database import create_document, get_documents, serialize_doc, to_object_id, utcnow
from errors import NotFound
from schemas import ProductIn, ProductOut

logger = logging.getLogger(__name__)


def product_query(search: Optional[str] = None, category: Optional[str] = None) -> dict:
    query = {}
    if search:
        query["name"] = {"$regex": re.escape(search), "$options": "i"}
    if category and category != "all":
        query["category"] = category
    return query


class ProductStore:
    collection = "product"

    def __init__(self, db):
        self.db = db
        self.products = db[self.collection]

    def list(self, page: int = 1, limit: int = 10, search: Optional[str] = None, category: Optional[str] = None) -> Tuple[List[ProductOut], int]:
        query = product_query(search, category)
        cursor = (
            self.products.find(query)
            .sort([("created_at", DESCENDING)])
            .skip((page - 1) * limit)
            .limit(limit)
        )
        items = [ProductOut(**serialize_doc(d)) for d in cursor]
        return items, self.products.count_documents(query)

    def find(self, product_id: str) -> Optional[ProductOut]:
        doc = self.products.find_one({"_id": to_object_id(product_id)})
        return ProductOut(**serialize_doc(doc)) if doc else None

    def get(self, product_id: str) -> ProductOut:
        product = self.find(product_id)
        if product is None:
            raise NotFound("Product not found")
        return product

    def find_many(self, product_ids: List[str]) -> dict:
        """Map of id -> product for the ids that still exist."""
        ids = [to_object_id(pid) for pid in product_ids]
        docs = get_documents(self.db, self.collection, {"_id": {"$in": ids}})
        return {str(d["_id"]): ProductOut(**serialize_doc(d)) for d in docs}

    def create(self, data: ProductIn, principal: Principal) -> ProductOut:
        doc = data.model_dump()
        doc["created_by"] = principal.id
        new_id = create_document(self.db, self.collection, doc)
        logger.info("product %s created by %s", new_id, principal.id)
        return self.get(new_id)

    def update(self, product_id: str, data: ProductIn, principal: Principal) -> ProductOut:
        updates = data.model_dump()
        updates["updated_by"] = principal.id
        updates["updated_at"] = utcnow()
        doc = self.products.find_one_and_update(
            {"_id": to_object_id(product_id)},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFound("Product not found")
        logger.info("product %s updated by %s", product_id, principal.id)
        return ProductOut(**serialize_doc(doc))

    def delete(self, product_id: str, principal: Principal) -> None:
        res = self.products.delete_one({"_id": to_object_id(product_id)})
        if res.deleted_count == 0:
            raise NotFound("Product not found")
        # drop the product from every cart so no line points at nothing
        self.db["cart"].update_many(
            {"items.product_id": product_id},
            {"$pull": {"items": {"product_id": product_id}}, "$set": {"updated_at": utcnow()}},
        )
        logger.info("product %s deleted by %s", product_id, principal.id)

    def reserve_stock(self, product_id: str, quantity: int) -> bool:
        """Decrement stock by ``quantity`` only if that much is on hand."""
        res = self.products.update_one(
            {"_id": to_object_id(product_id), "stock": {"$gte": quantity}},
            {"$inc": {"stock": -quantity}},
        )
        return res.matched_count == 1

    def release_stock(self, product_id: str, quantity: int) -> None:
        self.products.update_one({"_id": to_object_id(product_id)}, {"$inc": {"stock": quantity}})
