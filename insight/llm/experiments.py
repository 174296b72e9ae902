"""
A/B Test Configuration

Variants override request options for a share of analyze() calls. Each
call draws one variant at random, weighted by the variant weights.
"""

import random
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ABVariant(BaseModel):
    """One configuration alternative in an A/B test."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    option_overrides: Dict[str, Any] = Field(default_factory=dict, alias="optionOverrides")
    weight: float = Field(1.0, gt=0)


class ABTestConfig(BaseModel):
    """A/B test: weighted variants; weights need not sum to 1."""
    model_config = ConfigDict(populate_by_name=True)

    test_id: str = Field(..., alias="testId")
    variants: List[ABVariant] = Field(..., min_length=1)

    @field_validator("variants")
    @classmethod
    def variant_ids_unique(cls, variants: List[ABVariant]) -> List[ABVariant]:
        ids = [v.id for v in variants]
        if len(ids) != len(set(ids)):
            raise ValueError("variant ids must be unique")
        return variants

    @property
    def total_weight(self) -> float:
        return sum(v.weight for v in self.variants)

    def select_variant(self, rng: random.Random = None) -> ABVariant:
        """Weighted random draw over the cumulative distribution."""
        rng = rng or random
        threshold = rng.random() * self.total_weight

        cumulative = 0.0
        for variant in self.variants:
            cumulative += variant.weight
            if threshold < cumulative:
                return variant
        return self.variants[-1]
