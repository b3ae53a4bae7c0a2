"""Association rule and bundle schemas"""

from pydantic import BaseModel, Field
from typing import List


class AffinityRule(BaseModel):
    """antecedent => consequent association mined from order history"""

    antecedent: List[str]
    consequent: List[str]
    support: float = Field(ge=0, le=1)  # P(A and B) over the order sample
    confidence: float = Field(ge=0, le=1)  # P(B | A)
    lift: float = Field(ge=0)  # confidence / P(B)
    order_count: int = Field(ge=0)

    class Config:
        frozen = True


class ItemSet(BaseModel):
    """Group of items frequently ordered together"""

    items: List[str]
    support: float = Field(ge=0, le=1)
    count: int = Field(ge=0)

    class Config:
        frozen = True


class AffinityScore(BaseModel):
    """Rule-based suggestion with the rules that produced it"""

    item_id: str
    score: float = Field(ge=0, le=1)
    rules: List[AffinityRule] = Field(default_factory=list)
