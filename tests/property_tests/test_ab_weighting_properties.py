"""
Property-Based Tests for A/B Variant Selection

Property 5: Variant selection follows the configured weights
"""

import random
from collections import Counter

from hypothesis import given, settings, strategies as st

from insight.llm.experiments import ABTestConfig, ABVariant


weights_strategy = st.lists(
    st.floats(min_value=0.1, max_value=10.0, allow_nan=False),
    min_size=1,
    max_size=5,
)


class TestWeightingProperties:
    """Property tests for weighted selection."""

    @given(weights=weights_strategy, seed=st.integers(min_value=0, max_value=2 ** 32 - 1))
    @settings(max_examples=50, deadline=None)
    def test_property_frequencies_track_weights(self, weights, seed):
        """
        Property 5.1: Over many draws each variant's share is close to
        weight / total_weight.
        """
        config = ABTestConfig(test_id="t", variants=[
            ABVariant(id=f"v{i}", weight=w) for i, w in enumerate(weights)
        ])
        rng = random.Random(seed)
        draws = 4000
        counts = Counter(config.select_variant(rng).id for _ in range(draws))

        for i, weight in enumerate(weights):
            expected = weight / config.total_weight
            assert abs(counts[f"v{i}"] / draws - expected) < 0.05

    @given(weights=weights_strategy, value=st.floats(min_value=0.0, max_value=0.999999))
    @settings(max_examples=100)
    def test_property_selection_always_returns_a_variant(self, weights, value):
        """
        Property 5.2: Any random draw maps to one of the configured variants.
        """
        config = ABTestConfig(test_id="t", variants=[
            ABVariant(id=f"v{i}", weight=w) for i, w in enumerate(weights)
        ])

        class Fixed:
            def random(self):
                return value

        assert config.select_variant(Fixed()) in config.variants
