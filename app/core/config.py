from pydantic_settings import BaseSettings
from typing import Optional
from urllib.parse import quote_plus

class Settings(BaseSettings):
    PROJECT_NAME: str = "CreatorGenius API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    # MongoDB settings
    MONGO_USER: Optional[str] = None
    MONGO_PASS: Optional[str] = None
    MONGO_CLUSTER: str = "localhost:27017"
    DB_NAME: str = "creatorgenius"

    @property
    def MONGO_URI(self):
        if not self.MONGO_USER:
            return f"mongodb://{self.MONGO_CLUSTER}/{self.DB_NAME}"
        user = quote_plus(self.MONGO_USER)
        passwd = quote_plus(self.MONGO_PASS or "")
        return f"mongodb+srv://{user}:{passwd}@{self.MONGO_CLUSTER}/{self.DB_NAME}?retryWrites=true&w=majority"


    # JWT settings
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    JWT_REFRESH_SECRET_KEY: str

    # Google Gemini settings
    GOOGLE_API_KEY: Optional[str] = None
    LLM_MODEL_NAME: str = "gemini-1.5-flash"

    # Quota settings
    QUOTA_TIMEZONE: str = "UTC" # Calendar days roll over at midnight in this zone
    QUOTA_RENEWAL_DAY: int = 1 # Day of month monthly counters reset on
    QUOTA_ALIGN_TO_BILLING_CYCLE: bool = True # Use the user's subscription_end_date day when present
    QUOTA_FAIL_OPEN: bool = False # Allow requests uncounted when the store is unreachable
    QUOTA_TRACK_UNLIMITED: bool = True # Still count usage of features without a ceiling

    class Config:
        env_file = ".env"

settings = Settings()
