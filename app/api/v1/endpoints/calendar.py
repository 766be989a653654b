from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from app.api.deps import refresh_usage, require_storage
from app.core.plans import Feature
from app.database.connection import get_mongo_db
from app.database.crud import delete_owned_document, get_owned_document, insert_user_document, list_user_documents
from app.database.models import ScheduledIdeaModel
from app.schemas.content import ScheduleIdeaRequest
from app.services.auth_services import get_current_user
from app.services.quota.enforcer import QuotaDecision

router = APIRouter(dependencies=[Depends(refresh_usage)])


@router.post("/", status_code=status.HTTP_201_CREATED)
async def schedule_idea(
    data: ScheduleIdeaRequest,
    current_user: dict = Depends(get_current_user),
    storage: QuotaDecision = Depends(require_storage(Feature.CALENDAR_ITEMS)),
    db = Depends(get_mongo_db),
):
    await get_owned_document(db, "saved_ideas", data.idea_id, current_user["_id"])
    item = ScheduledIdeaModel(user_id=current_user["_id"], **data.model_dump())
    saved = await insert_user_document(db, "scheduled_ideas", item.model_dump())
    return JSONResponse(content={
        "status": "success",
        "message": "Idea scheduled",
        "data": jsonable_encoder(saved),
    }, status_code=status.HTTP_201_CREATED)


@router.get("/")
async def get_scheduled_ideas(current_user: dict = Depends(get_current_user), db = Depends(get_mongo_db)):
    items = await list_user_documents(db, "scheduled_ideas", current_user["_id"], sort_field="scheduled_date")
    return JSONResponse(content={
        "status": "success",
        "message": "Scheduled ideas retrieved",
        "data": jsonable_encoder(items),
    }, status_code=status.HTTP_200_OK)


@router.delete("/{item_id}")
async def delete_scheduled_idea(item_id: str, current_user: dict = Depends(get_current_user), db = Depends(get_mongo_db)):
    if not await delete_owned_document(db, "scheduled_ideas", item_id, current_user["_id"]):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail={"status": "error", "message": "Scheduled item not found"})
    return JSONResponse(content={"status": "success", "message": "Scheduled item deleted"}, status_code=status.HTTP_200_OK)
