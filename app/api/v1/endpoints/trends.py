from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from app.api.deps import refresh_usage, require_quota, require_storage, usage_payload
from app.core.plans import Feature, Window
from app.database.connection import get_mongo_db
from app.database.crud import insert_user_document
from app.database.models import InsightModel
from app.integrations.llm_client import ContentGenerator, get_content_generator
from app.schemas.content import SaveInsightRequest, TrendQueryRequest
from app.services.auth_services import get_current_user
from app.services.content_service import generate_or_fail, trend_query_prompt
from app.services.quota.enforcer import QuotaDecision

router = APIRouter(dependencies=[Depends(refresh_usage)])


@router.post("/query")
async def query_trends(
    data: TrendQueryRequest,
    quota: QuotaDecision = Depends(require_quota(Window.DAILY, Feature.SEARCH_QUERIES)),
    generator: ContentGenerator = Depends(get_content_generator),
):
    summary = await generate_or_fail(generator, trend_query_prompt(data.query))
    return JSONResponse(content={
        "status": "success",
        "message": "Trends retrieved",
        "data": {"query": data.query, "summary": summary},
        "usage": usage_payload(quota),
    }, status_code=status.HTTP_200_OK)


@router.post("/save-insight", status_code=status.HTTP_201_CREATED)
async def save_search_as_insight(
    data: SaveInsightRequest,
    current_user: dict = Depends(get_current_user),
    storage: QuotaDecision = Depends(require_storage(Feature.INSIGHTS_TOTAL)),
    quota: QuotaDecision = Depends(require_quota(Window.DAILY, Feature.INSIGHTS_SAVED)),
    db = Depends(get_mongo_db),
):
    insight = InsightModel(user_id=current_user["_id"], query=data.query, content=data.content)
    saved = await insert_user_document(db, "insights", insight.model_dump())
    return JSONResponse(content={
        "status": "success",
        "message": "Insight saved",
        "data": jsonable_encoder(saved),
        "usage": usage_payload(quota),
    }, status_code=status.HTTP_201_CREATED)
