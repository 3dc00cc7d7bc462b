#!/usr/bin/env python3
"""
Hand alternation analyzer.

Measures how often consecutive keystrokes cross between hands. Pairs
involving the space bar are counted as half alternating and half same-hand,
with a quarter of the count going to each direction, whichever hand the
other key belongs to: the thumb on the space bar may belong to either hand.
Pairs with any other neutral key are excluded.
"""

from typing import Any, Dict, Mapping, Optional

from .base_analyzer import AnalysisResult, BaseBigramAnalyzer, round_half_up
from .key_utils import LEFT, NEUTRAL, RIGHT, SPACE, HandClassifier, split_pair_key

SPACE_ALTERNATING_SHARE = 0.5
SPACE_DIRECTION_SHARE = 0.25


class AlternationAnalyzer(BaseBigramAnalyzer):
    """
    Computes alternating, same-hand and directional pair counts and the
    alternation rate (percentage of hand-assigned pairs that alternate).
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 classifier: Optional[HandClassifier] = None):
        super().__init__(config)
        self.classifier = classifier or HandClassifier()

    def calculate(self, pair_stats: Mapping[str, int]) -> AnalysisResult:
        alternating = 0.0
        same_hand = 0.0
        left_to_right = 0.0
        right_to_left = 0.0
        excluded = 0
        space_pairs = 0

        for pair, count in pair_stats.items():
            keys = split_pair_key(pair)
            if keys is None:
                excluded += count
                continue
            key1, key2 = keys

            if key1 == SPACE or key2 == SPACE:
                alternating += count * SPACE_ALTERNATING_SHARE
                same_hand += count * SPACE_ALTERNATING_SHARE
                left_to_right += count * SPACE_DIRECTION_SHARE
                right_to_left += count * SPACE_DIRECTION_SHARE
                space_pairs += count
                continue

            hand1 = self.classifier.classify(key1)
            hand2 = self.classifier.classify(key2)

            if hand1 == NEUTRAL or hand2 == NEUTRAL:
                excluded += count
                continue

            if hand1 != hand2:
                alternating += count
                if hand1 == LEFT and hand2 == RIGHT:
                    left_to_right += count
                else:
                    right_to_left += count
            else:
                same_hand += count

        valid_pairs = alternating + same_hand
        rate = (alternating / valid_pairs) * 100 if valid_pairs > 0 else 0.0

        components = {
            'total': round_half_up(valid_pairs),
            'alternating': round_half_up(alternating),
            'rate': round_half_up(rate),
            'leftToRight': round_half_up(left_to_right),
            'rightToLeft': round_half_up(right_to_left),
            'sameHand': round_half_up(same_hand),
        }

        return AnalysisResult(
            primary_value=components['rate'],
            components=components,
            metadata={
                'excluded_pairs': excluded,
                'space_pairs': space_pairs,
            },
        )
