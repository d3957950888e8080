"""Cost functions give the cost of linking one spot to another. Any callable (source, target) -> float works; the
classes here are the ones the tracker uses by default.

The candidate pairs themselves are always selected on Euclidean distance, so a cost function only needs to worry about
pairs that are already known to be close enough."""
from typing import Callable, Mapping, Optional

from spot_tracker.core.spot import Spot

CostFunction = Callable[[Spot, Spot], float]


class SquaredDistanceCost:
    """The squared distance, plus a penalty for every configured feature. The penalty for a feature is
    weight * |feature_a - feature_b|, or weight * (feature_a - feature_b) ** 2 if squared_penalty is set. Features that
    are missing on one of the spots don't contribute anything."""

    _feature_penalties: Mapping[str, float]
    _squared_penalty: bool

    def __init__(self, feature_penalties: Optional[Mapping[str, float]] = None, *, squared_penalty: bool = False):
        self._feature_penalties = dict(feature_penalties) if feature_penalties is not None else dict()
        self._squared_penalty = squared_penalty

    def __call__(self, source: Spot, target: Spot) -> float:
        cost = source.distance_squared(target)
        for feature, weight in self._feature_penalties.items():
            value_source = source.get_feature(feature)
            value_target = target.get_feature(feature)
            if value_source is None or value_target is None:
                continue
            difference = abs(value_source - value_target)
            if self._squared_penalty:
                difference = difference ** 2
            cost += weight * difference
        return cost

    def __repr__(self) -> str:
        return f"SquaredDistanceCost({self._feature_penalties!r}, squared_penalty={self._squared_penalty})"


# Used to create a cost function for a given set of feature penalties. The tracker uses different penalties for
# frame-to-frame linking, gap closing, splitting and merging.
CostFunctionFactory = Callable[[Mapping[str, float]], CostFunction]


def default_cost_function_factory(feature_penalties: Mapping[str, float]) -> CostFunction:
    return SquaredDistanceCost(feature_penalties)
