# app/database/crud.py

from typing import List, Dict, Any
from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from fastapi import HTTPException, status


def _serialize(doc: Dict[str, Any]) -> Dict[str, Any]:
    doc["id"] = str(doc.pop("_id"))
    return doc


async def insert_user_document(db, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
    result = await db[collection].insert_one(document)
    return {"id": str(result.inserted_id), **{k: v for k, v in document.items() if k != "_id"}}


async def get_owned_document(db, collection: str, document_id: str, user_id: str) -> Dict[str, Any]:
    """Fetch a document by ID, 404 if it is missing or belongs to another user."""
    try:
        doc = await db[collection].find_one({"_id": ObjectId(document_id), "user_id": user_id})
    except (InvalidId, TypeError):
        doc = None

    if not doc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"status": "error", "message": "Item not found"}
        )
    return _serialize(doc)


async def list_user_documents(
    db, collection: str, user_id: str, sort_field: str = "created_at", limit: int = 100
) -> List[Dict[str, Any]]:
    cursor = db[collection].find({"user_id": user_id}, sort=[(sort_field, -1)], limit=limit)
    return [_serialize(doc) for doc in await cursor.to_list(length=limit)]


async def delete_owned_document(db, collection: str, document_id: str, user_id: str) -> bool:
    try:
        result = await db[collection].delete_one({"_id": ObjectId(document_id), "user_id": user_id})
    except (InvalidId, TypeError):
        return False
    return result.deleted_count == 1


async def update_owned_document(
    db, collection: str, document_id: str, user_id: str, changes: Dict[str, Any]
) -> Dict[str, Any]:
    """Apply ``changes`` to a document the user owns, 404 if there is no such document."""
    try:
        doc = await db[collection].find_one_and_update(
            {"_id": ObjectId(document_id), "user_id": user_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
    except (InvalidId, TypeError):
        doc = None

    if not doc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"status": "error", "message": "Item not found"}
        )
    return _serialize(doc)
