from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Dict, List, Optional
from app.core.plans import Tier, Window, Feature, field_for, resolve_tier


class UsageCounters(BaseModel):
    daily: Dict[str, int] = Field(default_factory=dict, description="Counters reset every day")
    monthly: Dict[str, int] = Field(default_factory=dict, description="Counters reset every billing period")
    last_daily_reset: Optional[datetime] = Field(None, description="Last time daily counters were zeroed")
    last_monthly_reset: Optional[datetime] = Field(None, description="Last time monthly counters were zeroed")

    @field_validator("daily", "monthly", mode="before")
    @classmethod
    def _clamp_counters(cls, value):
        # Counters are never negative, even if a document was edited by hand
        if not value:
            return {}
        return {key: max(0, int(count or 0)) for key, count in value.items()}


class UsageRecord(BaseModel):
    """The quota-relevant slice of a user document."""
    user_id: str
    tier: Tier = Tier.FREE
    subscription_end_date: Optional[datetime] = None
    usage: UsageCounters = Field(default_factory=UsageCounters)

    @field_validator("tier", mode="before")
    @classmethod
    def _resolve_tier(cls, value):
        return resolve_tier(value)

    def counter(self, window: Window, feature: Feature) -> int:
        counters = self.usage.daily if window is Window.DAILY else self.usage.monthly
        return counters.get(field_for(window, feature), 0)

    @classmethod
    def from_document(cls, user_doc: dict) -> "UsageRecord":
        return cls(
            user_id=str(user_doc["_id"]),
            tier=user_doc.get("tier"),
            subscription_end_date=user_doc.get("subscription_end_date"),
            usage=user_doc.get("usage") or {},
        )


class UserModel(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: str = Field(..., description="User name")
    email: str = Field(..., description="User email")
    password: str = Field(..., description="User password")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation time")
    updated_at: datetime = Field(default_factory=datetime.utcnow, description="Update time")
    tier: Tier = Field(Tier.FREE, description="Subscription tier")
    subscription_end_date: Optional[datetime] = Field(None, description="End of the current paid period")
    usage: UsageCounters = Field(default_factory=UsageCounters, description="User usage counters")


class SavedIdeaModel(BaseModel):
    user_id: str = Field(..., description="Owner user ID")
    title: str = Field(..., description="Idea title")
    angle: str = Field(..., description="Idea angle")
    tags: List[str] = Field(default_factory=list, description="Idea tags")
    hook: Optional[str] = None
    saved_at: datetime = Field(default_factory=datetime.utcnow, description="Save time")


class ScheduledIdeaModel(BaseModel):
    user_id: str = Field(..., description="Owner user ID")
    idea_id: str = Field(..., description="Scheduled idea ID")
    scheduled_date: datetime = Field(..., description="Publish date")
    platform: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation time")


class InsightModel(BaseModel):
    user_id: str = Field(..., description="Owner user ID")
    query: str = Field(..., description="Search query the insight came from")
    content: str = Field(..., description="Saved insight text")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation time")


class ScriptModel(BaseModel):
    user_id: str = Field(..., description="Owner user ID")
    idea_id: str = Field(..., description="Idea the script was generated from")
    content: str = Field(..., description="Generated script")
    transformed_from: Optional[str] = Field(None, description="Source script ID for transformations")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation time")
