"""
Model Selection

Chooses a model tier (simple, medium, complex) from prompt
characteristics when the caller does not pin a model. Selection is a
pure function of the messages, the options and the tier configuration:
identical inputs always select the same model, which keeps caching and
tests reproducible.
"""

import math
import logging
from typing import Dict, Any, Optional, Sequence

from insight.llm.config import ModelTierConfig
from insight.llm.providers.base import Message, RequestOptions, VALID_TIERS


logger = logging.getLogger(__name__)


SIMPLE_TOKEN_LIMIT = 2000
MEDIUM_TOKEN_LIMIT = 7000
MANY_TURNS = 5

COMPLEXITY_KEYWORDS = (
    "analyze", "分析",
    "complex", "复杂",
    "detailed", "详细",
    "comprehensive", "全面",
    "reasoning", "推理",
    "critique", "评论",
)


def estimate_tokens(messages: Sequence[Message]) -> int:
    """Rough token estimate: 4 per message of overhead plus chars / 4."""
    chars = sum(len(m.content) for m in messages)
    return 4 * len(messages) + math.ceil(chars / 4)


def _bump(tier: str, steps: int) -> str:
    index = min(VALID_TIERS.index(tier) + steps, len(VALID_TIERS) - 1)
    return VALID_TIERS[index]


class ModelSelectionService:
    """Tier-based model selection.

    Rules, in order:
    1. options.model, when set, is used verbatim
    2. With selection disabled: the default model, else the medium tier
    3. options.complexity_level, when set, picks that tier
    4. Otherwise estimate tokens and bump one tier each for strict JSON,
       many user turns and complexity keywords in the last user message

    Example:
        >>> selector = ModelSelectionService(ModelTierConfig())
        >>> selector.select_model([Message("user", "hi")], RequestOptions())
        'gpt-3.5-turbo'
    """

    def __init__(
        self,
        tiers: Optional[ModelTierConfig] = None,
        enabled: bool = True,
        default_model: Optional[str] = None
    ):
        self.tiers = tiers or ModelTierConfig()
        self.enabled = enabled
        self.default_model = default_model

    def select_tier(self, messages: Sequence[Message], options: RequestOptions) -> str:
        if options.complexity_level:
            return options.complexity_level

        tokens = estimate_tokens(messages)
        if tokens < SIMPLE_TOKEN_LIMIT:
            tier = "simple"
        elif tokens < MEDIUM_TOKEN_LIMIT:
            tier = "medium"
        else:
            tier = "complex"

        bumps = 0
        if options.wants_strict_json:
            bumps += 1

        user_messages = [m for m in messages if m.role == "user"]
        if len(user_messages) > MANY_TURNS:
            bumps += 1

        if user_messages:
            last = user_messages[-1].content.lower()
            if any(keyword in last for keyword in COMPLEXITY_KEYWORDS):
                bumps += 1

        return _bump(tier, bumps)

    def select_model(self, messages: Sequence[Message], options: RequestOptions) -> str:
        """Select the model identifier for a request."""
        if options.model:
            return options.model

        if not self.enabled or not options.auto_model_selection:
            return self.default_model or self.tiers.medium

        tier = self.select_tier(messages, options)
        model = self.tiers.get(tier)
        logger.debug(f"Selected {tier} tier model: {model}")
        return model

    def update_model_tiers(self, **tiers: str):
        """Rebind one or more tiers to new model identifiers.

        Raises:
            ValueError: For an unknown tier name
        """
        for tier, model in tiers.items():
            if tier not in VALID_TIERS:
                raise ValueError(f"Unknown complexity tier: {tier}")
            setattr(self.tiers, tier, model)
        logger.info(f"Updated model tiers: {tiers}")

    def enable(self):
        self.enabled = True

    def disable(self):
        self.enabled = False

    def get_config(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "default_model": self.default_model,
            "tiers": {tier: self.tiers.get(tier) for tier in VALID_TIERS},
        }
