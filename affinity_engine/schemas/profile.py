"""Customer profile and recommendation result schemas"""

from pydantic import BaseModel, Field
from typing import Dict, List
from datetime import datetime

from .affinity import AffinityRule


class UserProfile(BaseModel):
    """Per-customer preference vectors, both normalized to a max of 1.0"""

    customer_id: str
    preferences: Dict[str, float] = Field(default_factory=dict)
    recency_weighted_preferences: Dict[str, float] = Field(default_factory=dict)
    last_built: datetime

    @property
    def is_empty(self) -> bool:
        return not self.preferences


class SimilarUser(BaseModel):
    """Another customer and their overlap with the target's preferences"""

    customer_id: str
    similarity: float = Field(ge=0, le=1)


class ItemRecommendation(BaseModel):
    """Item suggested from similar customers' orders"""

    item_id: str
    score: float = Field(ge=0, le=1)


class RecommendationResult(BaseModel):
    """Combined rule-based and collaborative score for one candidate"""

    item_id: str
    score: float = Field(ge=0, le=1)
    affinity_score: float = Field(ge=0, le=1)
    collaborative_score: float = Field(ge=0, le=1)
    rules: List[AffinityRule] = Field(default_factory=list)
