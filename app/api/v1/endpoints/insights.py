from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from app.database.connection import get_mongo_db
from app.database.crud import delete_owned_document, get_owned_document, list_user_documents, update_owned_document
from app.schemas.content import UpdateInsightRequest
from app.services.auth_services import get_current_user

router = APIRouter()


@router.get("/")
async def get_insights(current_user: dict = Depends(get_current_user), db = Depends(get_mongo_db)):
    insights = await list_user_documents(db, "insights", current_user["_id"])
    return JSONResponse(content={
        "status": "success",
        "message": "Insights retrieved",
        "data": jsonable_encoder(insights),
    }, status_code=status.HTTP_200_OK)


@router.get("/{insight_id}")
async def get_insight(insight_id: str, current_user: dict = Depends(get_current_user), db = Depends(get_mongo_db)):
    insight = await get_owned_document(db, "insights", insight_id, current_user["_id"])
    return JSONResponse(content={
        "status": "success",
        "message": "Insight retrieved",
        "data": jsonable_encoder(insight),
    }, status_code=status.HTTP_200_OK)


@router.put("/{insight_id}")
async def update_insight(
    insight_id: str,
    data: UpdateInsightRequest,
    current_user: dict = Depends(get_current_user),
    db = Depends(get_mongo_db),
):
    changes = data.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"status": "error", "message": "Nothing to update"})
    changes["updated_at"] = datetime.utcnow()
    insight = await update_owned_document(db, "insights", insight_id, current_user["_id"], changes)
    return JSONResponse(content={
        "status": "success",
        "message": "Insight updated",
        "data": jsonable_encoder(insight),
    }, status_code=status.HTTP_200_OK)


@router.delete("/{insight_id}")
async def delete_insight(insight_id: str, current_user: dict = Depends(get_current_user), db = Depends(get_mongo_db)):
    # Deleting frees a slot under the free tier's insight ceiling
    if not await delete_owned_document(db, "insights", insight_id, current_user["_id"]):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail={"status": "error", "message": "Insight not found"})
    return JSONResponse(content={"status": "success", "message": "Insight deleted"}, status_code=status.HTTP_200_OK)
