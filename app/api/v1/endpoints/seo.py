from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from app.api.deps import refresh_usage, require_quota, usage_payload
from app.core.plans import Feature, Window
from app.integrations.llm_client import ContentGenerator, get_content_generator
from app.schemas.content import SeoAnalysisRequest
from app.services.content_service import generate_or_fail, seo_prompt
from app.services.quota.enforcer import QuotaDecision

router = APIRouter(dependencies=[Depends(refresh_usage)])


@router.post("/analyze")
async def analyze_seo(
    data: SeoAnalysisRequest,
    quota: QuotaDecision = Depends(require_quota(Window.DAILY, Feature.SEO_ANALYSES)),
    generator: ContentGenerator = Depends(get_content_generator),
):
    report = await generate_or_fail(generator, seo_prompt(data.title, data.description, data.keywords))
    return JSONResponse(content={
        "status": "success",
        "message": "SEO analysis complete",
        "data": report,
        "usage": usage_payload(quota),
    }, status_code=status.HTTP_200_OK)
