"""Reward aggregators satisfying the RewardAggregator protocol."""

from .segment_cost import COST_METRICS, SegmentCostAggregator
from .tracking import TrackingRewardAggregator

__all__ = [
    "COST_METRICS",
    "SegmentCostAggregator",
    "TrackingRewardAggregator",
]
