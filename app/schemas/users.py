from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Optional
from app.core.plans import Tier, resolve_tier
from app.database.models import UsageCounters


class UserOut(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(..., alias="_id", description="User ID")
    name: str = Field(..., description="User name")
    email: str = Field(..., description="User email")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation time")
    updated_at: datetime = Field(default_factory=datetime.utcnow, description="Update time")
    tier: Tier = Field(Tier.FREE, description="Subscription tier")
    subscription_end_date: Optional[datetime] = Field(None, description="End of the current paid period")
    usage: UsageCounters = Field(default_factory=UsageCounters, description="User usage counters")

    @field_validator("tier", mode="before")
    @classmethod
    def _resolve_tier(cls, value):
        # Reported the same way the quota limits treat it
        return resolve_tier(value)
