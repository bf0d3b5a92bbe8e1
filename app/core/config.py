from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Business Directory API"
    DATABASE_URL: str = "sqlite:///./directory.db"
    SECRET_KEY: str = "supersecretkey_change_me_in_production"
    ALGORITHM: str = "HS256"

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    # Placeholder in template descriptions replaced by the business name (case-insensitive)
    BUSINESS_NAME_TOKEN: str = "[businessName]"

    # Labels applied to cart items saved without one
    DEFAULT_CATEGORY: str = "Uncategorized"
    DEFAULT_REQUIREMENT_NAME: str = "Unspecified Requirement"

    COMMUNITY_FEED_LIMIT: int = 50
    COMMENT_MAX_LENGTH: int = 1000

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
