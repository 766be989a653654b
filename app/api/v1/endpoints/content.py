from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from app.api.deps import refresh_usage, require_quota, usage_payload
from app.core.plans import Feature, Window
from app.integrations.llm_client import ContentGenerator, get_content_generator
from app.schemas.content import IdeationRequest
from app.services.content_service import generate_or_fail, ideation_prompt, trend_ideation_prompt
from app.services.quota.enforcer import QuotaDecision

router = APIRouter(dependencies=[Depends(refresh_usage)])


@router.post("/ideation")
async def generate_content_ideas(
    data: IdeationRequest,
    quota: QuotaDecision = Depends(require_quota(Window.MONTHLY, Feature.CONTENT_IDEATIONS)),
    generator: ContentGenerator = Depends(get_content_generator),
):
    ideas = await generate_or_fail(generator, ideation_prompt(data.topic, data.platform, data.count))
    return JSONResponse(content={
        "status": "success",
        "message": "Content ideas generated",
        "data": ideas,
        "usage": usage_payload(quota),
    }, status_code=status.HTTP_200_OK)


@router.post("/trend-ideation")
async def generate_trend_ideas(
    data: IdeationRequest,
    quota: QuotaDecision = Depends(require_quota(Window.DAILY, Feature.TREND_IDEATIONS)),
    generator: ContentGenerator = Depends(get_content_generator),
):
    ideas = await generate_or_fail(generator, trend_ideation_prompt(data.topic, data.platform, data.count))
    return JSONResponse(content={
        "status": "success",
        "message": "Trend ideas generated",
        "data": ideas,
        "usage": usage_payload(quota),
    }, status_code=status.HTTP_200_OK)
