from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional


class IdeationRequest(BaseModel):
    topic: str = Field(..., min_length=1, description="Niche or topic to brainstorm around")
    platform: str = Field("youtube", description="Target platform")
    count: int = Field(5, ge=1, le=10, description="Number of ideas to generate")


class TrendQueryRequest(BaseModel):
    query: str = Field(..., min_length=1, description="Trend or news search query")


class SaveInsightRequest(BaseModel):
    query: str = Field(..., description="Search query the insight came from")
    content: str = Field(..., min_length=1, description="Insight text to keep")


class SaveIdeaRequest(BaseModel):
    title: str = Field(..., min_length=1)
    angle: str = Field(..., min_length=1)
    tags: List[str] = Field(..., min_length=1)
    hook: Optional[str] = None


class RefineIdeaRequest(BaseModel):
    instructions: str = Field(..., min_length=1, description="How the idea should be refined")


class TransformScriptRequest(BaseModel):
    target_format: str = Field(..., min_length=1, description="Format to rewrite the script into, e.g. 'shorts'")


class ScheduleIdeaRequest(BaseModel):
    idea_id: str
    scheduled_date: datetime
    platform: Optional[str] = None
    notes: Optional[str] = None


class SeoAnalysisRequest(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    keywords: List[str] = Field(default_factory=list)


class UpdateInsightRequest(BaseModel):
    query: Optional[str] = Field(None, description="Search query the insight came from")
    content: Optional[str] = Field(None, min_length=1, description="Insight text to keep")
