from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from app.api.deps import refresh_usage, require_quota, usage_payload
from app.core.plans import Feature, Window
from app.database.connection import get_mongo_db
from app.database.crud import delete_owned_document, get_owned_document, insert_user_document, list_user_documents
from app.database.models import ScriptModel
from app.integrations.llm_client import ContentGenerator, get_content_generator
from app.schemas.content import TransformScriptRequest
from app.services.auth_services import get_current_user
from app.services.content_service import generate_or_fail, script_prompt, transform_prompt
from app.services.quota.enforcer import QuotaDecision

router = APIRouter(dependencies=[Depends(refresh_usage)])


@router.post("/generate/{idea_id}", status_code=status.HTTP_201_CREATED)
async def generate_script(
    idea_id: str,
    current_user: dict = Depends(get_current_user),
    daily: QuotaDecision = Depends(require_quota(Window.DAILY, Feature.SCRIPT_GENERATION)),
    monthly: QuotaDecision = Depends(require_quota(Window.MONTHLY, Feature.SCRIPT_GENERATION)),
    db = Depends(get_mongo_db),
    generator: ContentGenerator = Depends(get_content_generator),
):
    idea = await get_owned_document(db, "saved_ideas", idea_id, current_user["_id"])
    content = await generate_or_fail(generator, script_prompt(idea))
    script = ScriptModel(user_id=current_user["_id"], idea_id=idea_id, content=content)
    saved = await insert_user_document(db, "scripts", script.model_dump())
    return JSONResponse(content={
        "status": "success",
        "message": "Script generated",
        "data": jsonable_encoder(saved),
        "usage": usage_payload(daily, monthly),
    }, status_code=status.HTTP_201_CREATED)


@router.get("/")
async def get_user_scripts(current_user: dict = Depends(get_current_user), db = Depends(get_mongo_db)):
    scripts = await list_user_documents(db, "scripts", current_user["_id"])
    return JSONResponse(content={
        "status": "success",
        "message": "Scripts retrieved",
        "data": jsonable_encoder(scripts),
    }, status_code=status.HTTP_200_OK)


@router.delete("/{script_id}")
async def delete_script(script_id: str, current_user: dict = Depends(get_current_user), db = Depends(get_mongo_db)):
    if not await delete_owned_document(db, "scripts", script_id, current_user["_id"]):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail={"status": "error", "message": "Script not found"})
    return JSONResponse(content={"status": "success", "message": "Script deleted"}, status_code=status.HTTP_200_OK)


@router.post("/{script_id}/transform", status_code=status.HTTP_201_CREATED)
async def transform_script(
    script_id: str,
    data: TransformScriptRequest,
    current_user: dict = Depends(get_current_user),
    quota: QuotaDecision = Depends(require_quota(Window.MONTHLY, Feature.SCRIPT_TRANSFORMATIONS)),
    db = Depends(get_mongo_db),
    generator: ContentGenerator = Depends(get_content_generator),
):
    source = await get_owned_document(db, "scripts", script_id, current_user["_id"])
    content = await generate_or_fail(generator, transform_prompt(source["content"], data.target_format))
    script = ScriptModel(
        user_id=current_user["_id"],
        idea_id=source["idea_id"],
        content=content,
        transformed_from=script_id,
    )
    saved = await insert_user_document(db, "scripts", script.model_dump())
    return JSONResponse(content={
        "status": "success",
        "message": "Script transformed",
        "data": jsonable_encoder(saved),
        "usage": usage_payload(quota),
    }, status_code=status.HTTP_201_CREATED)
