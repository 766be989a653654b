from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from app.api.deps import refresh_usage, require_quota, require_storage, usage_payload
from app.core.plans import Feature, Window
from app.database.connection import get_mongo_db
from app.database.crud import delete_owned_document, get_owned_document, insert_user_document, list_user_documents
from app.database.models import SavedIdeaModel
from app.integrations.llm_client import ContentGenerator, get_content_generator
from app.schemas.content import RefineIdeaRequest, SaveIdeaRequest
from app.services.auth_services import get_current_user
from app.services.content_service import generate_or_fail, refine_prompt
from app.services.quota.enforcer import QuotaDecision

router = APIRouter(dependencies=[Depends(refresh_usage)])


@router.post("/", status_code=status.HTTP_201_CREATED)
async def save_idea(
    data: SaveIdeaRequest,
    current_user: dict = Depends(get_current_user),
    storage: QuotaDecision = Depends(require_storage(Feature.SAVED_IDEAS)),
    db = Depends(get_mongo_db),
):
    """Save a generated idea. Free users are capped on the number of ideas kept."""
    idea = SavedIdeaModel(user_id=current_user["_id"], **data.model_dump())
    saved = await insert_user_document(db, "saved_ideas", idea.model_dump())
    return JSONResponse(content={
        "status": "success",
        "message": "Idea saved",
        "data": jsonable_encoder(saved),
    }, status_code=status.HTTP_201_CREATED)


@router.get("/")
async def get_saved_ideas(current_user: dict = Depends(get_current_user), db = Depends(get_mongo_db)):
    ideas = await list_user_documents(db, "saved_ideas", current_user["_id"], sort_field="saved_at")
    return JSONResponse(content={
        "status": "success",
        "message": "Saved ideas retrieved",
        "data": jsonable_encoder(ideas),
    }, status_code=status.HTTP_200_OK)


@router.delete("/{idea_id}")
async def delete_idea(idea_id: str, current_user: dict = Depends(get_current_user), db = Depends(get_mongo_db)):
    if not await delete_owned_document(db, "saved_ideas", idea_id, current_user["_id"]):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail={"status": "error", "message": "Idea not found"})
    return JSONResponse(content={"status": "success", "message": "Idea deleted"}, status_code=status.HTTP_200_OK)


@router.post("/{idea_id}/refine")
async def refine_idea(
    idea_id: str,
    data: RefineIdeaRequest,
    current_user: dict = Depends(get_current_user),
    db = Depends(get_mongo_db),
    generator: ContentGenerator = Depends(get_content_generator),
    quota: QuotaDecision = Depends(require_quota(Window.MONTHLY, Feature.REFINEMENTS)),
):
    idea = await get_owned_document(db, "saved_ideas", idea_id, current_user["_id"])
    refined = await generate_or_fail(generator, refine_prompt(idea, data.instructions))
    refinement = await insert_user_document(db, "refinements", {
        "user_id": current_user["_id"],
        "idea_id": idea_id,
        "instructions": data.instructions,
        "content": refined,
    })
    return JSONResponse(content={
        "status": "success",
        "message": "Idea refined",
        "data": jsonable_encoder(refinement),
        "usage": usage_payload(quota),
    }, status_code=status.HTTP_200_OK)
