"""Configuration settings for the affinity engine"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    VERSION: str = "1.0.0"

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # Database Settings (reference SQL order store)
    DATABASE_URL: str = "sqlite:///./orders.db"

    # Rule Mining Settings
    MIN_SUPPORT: float = 0.01  # Minimum 1% of sampled orders
    MIN_CONFIDENCE: float = 0.10
    MAX_RULES_PER_ITEM: int = 50
    ORDER_SAMPLE_SIZE: int = 1000  # Most recent orders considered per mining run
    RULE_CACHE_MAX_ENTRIES: Optional[int] = None  # Unbounded unless set
    LIFT_CAP: float = 2.0

    # Scoring Settings
    NEUTRAL_SCORE: float = 0.5
    COMPLETE_MEAL_LIMIT: int = 10
    ALSO_BOUGHT_LIMIT: int = 5
    COLLABORATIVE_WEIGHT: float = 0.6  # Weight for collaborative score (1-weight for affinity)

    # Collaborative Filtering Settings
    BUSINESS_VERTICAL: str = "food"
    DECAY_RATE: Optional[float] = None  # Overrides the vertical's decay rate when set
    PROFILE_ORDER_LIMIT: int = 100
    STRONG_PREFERENCE_THRESHOLD: float = 0.7
    RECENT_PREFERENCE_SCORE: float = 0.3
    SIMILAR_USER_ORDER_LIMIT: int = 500
    SIMILAR_USER_POOL: int = 20

    # Cache Settings
    PROFILE_CACHE_TTL: int = 1800  # 30 minutes
    PROFILE_CACHE_MAX_ENTRIES: Optional[int] = 10000
    SIMILARITY_CACHE_TTL: int = 1800
    SIMILARITY_CACHE_MAX_ENTRIES: Optional[int] = 10000

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
