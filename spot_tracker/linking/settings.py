"""The settings of a tracking run. The settings are immutable: create a new object (for example using
`settings.with_changes(...)`) if you want other values."""
import math
from types import MappingProxyType
from typing import Dict, Optional, Mapping, Any

from spot_tracker.config import ConfigFile, config_type_float, config_type_int, config_type_bool, \
    config_type_feature_weights, config_type_optional_float, config_type_optional_int
from spot_tracker.core import UserError

_NAMES = ["max_linking_distance", "max_gap_closing_distance", "max_frame_gap", "allow_gap_closing",
          "allow_splitting", "allow_merging", "linking_feature_penalties", "max_splitting_distance",
          "max_merging_distance", "gap_closing_feature_penalties", "splitting_feature_penalties",
          "merging_feature_penalties", "alternative_cost_factor", "alternative_cost_percentile", "max_workers"]


def _freeze(penalties: Optional[Mapping[str, float]]) -> Optional[Mapping[str, float]]:
    if penalties is None:
        return None
    return MappingProxyType(dict(penalties))


def _format_weights(penalties: Optional[Mapping[str, float]]) -> str:
    if penalties is None:
        return ""
    return ", ".join(f"{name}: {weight}" for name, weight in penalties.items())


class TrackingSettings:
    """All parameters of the tracker.

    Frame-to-frame linking only links spots that are at most max_linking_distance apart. Gap closing links the end of
    one track segment to the start of another segment, with at least one missing frame in between. The frame
    difference can be at most max_frame_gap, so a max_frame_gap of 2 allows exactly one missing frame, and a value
    below 2 disables gap closing altogether. Splitting and merging attach a segment start or end to the middle of
    another segment.

    The feature penalties are dictionaries of feature name to weight. They make links between spots with different
    feature values more expensive.
    """

    __slots__ = ["_" + name for name in _NAMES]

    _max_linking_distance: float
    _max_gap_closing_distance: float
    _max_frame_gap: int
    _allow_gap_closing: bool
    _allow_splitting: bool
    _allow_merging: bool
    _linking_feature_penalties: Mapping[str, float]
    _max_splitting_distance: Optional[float]
    _max_merging_distance: Optional[float]
    _gap_closing_feature_penalties: Optional[Mapping[str, float]]
    _splitting_feature_penalties: Optional[Mapping[str, float]]
    _merging_feature_penalties: Optional[Mapping[str, float]]
    _alternative_cost_factor: float
    _alternative_cost_percentile: float
    _max_workers: Optional[int]

    def __init__(self, *, max_linking_distance: float = 15.0, max_gap_closing_distance: float = 15.0,
                 max_frame_gap: int = 2, allow_gap_closing: bool = True, allow_splitting: bool = False,
                 allow_merging: bool = False, linking_feature_penalties: Optional[Dict[str, float]] = None,
                 max_splitting_distance: Optional[float] = None, max_merging_distance: Optional[float] = None,
                 gap_closing_feature_penalties: Optional[Dict[str, float]] = None,
                 splitting_feature_penalties: Optional[Dict[str, float]] = None,
                 merging_feature_penalties: Optional[Dict[str, float]] = None,
                 alternative_cost_factor: float = 1.05, alternative_cost_percentile: float = 100,
                 max_workers: Optional[int] = None):
        self._max_linking_distance = float(max_linking_distance)
        self._max_gap_closing_distance = float(max_gap_closing_distance)
        self._max_frame_gap = int(max_frame_gap)
        self._allow_gap_closing = bool(allow_gap_closing)
        self._allow_splitting = bool(allow_splitting)
        self._allow_merging = bool(allow_merging)
        self._linking_feature_penalties = _freeze(linking_feature_penalties if linking_feature_penalties else {})
        self._max_splitting_distance = None if max_splitting_distance is None else float(max_splitting_distance)
        self._max_merging_distance = None if max_merging_distance is None else float(max_merging_distance)
        self._gap_closing_feature_penalties = _freeze(gap_closing_feature_penalties)
        self._splitting_feature_penalties = _freeze(splitting_feature_penalties)
        self._merging_feature_penalties = _freeze(merging_feature_penalties)
        self._alternative_cost_factor = float(alternative_cost_factor)
        self._alternative_cost_percentile = float(alternative_cost_percentile)
        self._max_workers = None if max_workers is None else int(max_workers)

    @property
    def max_linking_distance(self) -> float:
        return self._max_linking_distance

    @property
    def max_gap_closing_distance(self) -> float:
        return self._max_gap_closing_distance

    @property
    def max_frame_gap(self) -> int:
        return self._max_frame_gap

    @property
    def allow_gap_closing(self) -> bool:
        return self._allow_gap_closing

    @property
    def allow_splitting(self) -> bool:
        return self._allow_splitting

    @property
    def allow_merging(self) -> bool:
        return self._allow_merging

    @property
    def linking_feature_penalties(self) -> Mapping[str, float]:
        return self._linking_feature_penalties

    @property
    def max_splitting_distance(self) -> float:
        """Maximum distance for a splitting link. Falls back to the gap closing distance if not set."""
        if self._max_splitting_distance is None:
            return self._max_gap_closing_distance
        return self._max_splitting_distance

    @property
    def max_merging_distance(self) -> float:
        """Maximum distance for a merging link. Falls back to the gap closing distance if not set."""
        if self._max_merging_distance is None:
            return self._max_gap_closing_distance
        return self._max_merging_distance

    @property
    def gap_closing_feature_penalties(self) -> Mapping[str, float]:
        if self._gap_closing_feature_penalties is None:
            return self._linking_feature_penalties
        return self._gap_closing_feature_penalties

    @property
    def splitting_feature_penalties(self) -> Mapping[str, float]:
        if self._splitting_feature_penalties is None:
            return self._linking_feature_penalties
        return self._splitting_feature_penalties

    @property
    def merging_feature_penalties(self) -> Mapping[str, float]:
        if self._merging_feature_penalties is None:
            return self._linking_feature_penalties
        return self._merging_feature_penalties

    @property
    def alternative_cost_factor(self) -> float:
        return self._alternative_cost_factor

    @property
    def alternative_cost_percentile(self) -> float:
        return self._alternative_cost_percentile

    @property
    def max_workers(self) -> Optional[int]:
        return self._max_workers

    def gap_closing_enabled(self) -> bool:
        """Gap closing needs a frame difference of at least 2, so a max_frame_gap below 2 disables it."""
        return self._allow_gap_closing and self._max_frame_gap >= 2

    def segment_linking_enabled(self) -> bool:
        """Returns True if any of gap closing, splitting or merging is enabled."""
        return self.gap_closing_enabled() or self._allow_splitting or self._allow_merging

    def validate(self):
        """Raises UserError if any of the settings is invalid."""
        for name in ["max_linking_distance", "max_gap_closing_distance", "max_splitting_distance",
                     "max_merging_distance"]:
            value = getattr(self, name)
            if not (value > 0):
                raise UserError("Invalid tracking settings", f"The {name.replace('_', ' ')} must be positive,"
                                                             f" but was {value}.")
        if self._max_frame_gap < 0:
            raise UserError("Invalid tracking settings", f"The maximum frame gap cannot be negative, but was"
                                                         f" {self._max_frame_gap}.")
        for name in ["linking_feature_penalties", "gap_closing_feature_penalties", "splitting_feature_penalties",
                     "merging_feature_penalties"]:
            for feature, weight in getattr(self, name).items():
                if not (weight >= 0) or math.isinf(weight):
                    raise UserError("Invalid tracking settings", f"The penalty weight for feature \"{feature}\" in"
                                                                 f" {name.replace('_', ' ')} must be a non-negative"
                                                                 f" number, but was {weight}.")
        if not (self._alternative_cost_factor > 1) or math.isinf(self._alternative_cost_factor):
            raise UserError("Invalid tracking settings", f"The alternative cost factor must be larger than 1, but was"
                                                         f" {self._alternative_cost_factor}.")
        if not (0 < self._alternative_cost_percentile <= 100):
            raise UserError("Invalid tracking settings", f"The alternative cost percentile must be in (0, 100], but"
                                                         f" was {self._alternative_cost_percentile}.")
        if self._max_workers is not None and self._max_workers < 1:
            raise UserError("Invalid tracking settings", f"Need at least one worker thread, got {self._max_workers}.")

    def with_changes(self, **changes: Any) -> "TrackingSettings":
        """Returns a copy of these settings, with the given values changed. Raises TypeError for unknown names."""
        values = self.to_dict()
        for name, value in changes.items():
            if name not in values:
                raise TypeError(f"Unknown setting: {name}")
            values[name] = value
        return TrackingSettings(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Gets all settings as a dictionary, using the same names as the constructor. Settings that fall back to
        another setting are stored as None."""
        values = dict()
        for name in _NAMES:
            value = getattr(self, "_" + name)
            if isinstance(value, MappingProxyType):
                value = dict(value)
            values[name] = value
        return values

    @staticmethod
    def from_config(config: ConfigFile) -> "TrackingSettings":
        """Reads the settings from the given config file. Missing settings are stored using their default values."""
        max_linking_distance = config.get_or_default("max_linking_distance", "15", type=config_type_float,
                                                     comment="Maximum distance for frame-to-frame links.")
        max_gap_closing_distance = config.get_or_default("max_gap_closing_distance", "15", type=config_type_float,
                                                         comment="Maximum distance for links over a gap.")
        max_frame_gap = config.get_or_default("max_frame_gap", "2", type=config_type_int,
                                              comment="Maximum frame difference of a gap closing link. Use 2 to allow"
                                                      " one missing frame.")
        allow_gap_closing = config.get_or_default("allow_gap_closing", "True", type=config_type_bool)
        allow_splitting = config.get_or_default("allow_splitting", "False", type=config_type_bool,
                                                comment="Set to True to detect divisions.")
        allow_merging = config.get_or_default("allow_merging", "False", type=config_type_bool)
        max_splitting_distance = config.get_or_default("max_splitting_distance", "",
                                                       type=config_type_optional_float,
                                                       comment="Leave empty to use the gap closing distance.")
        max_merging_distance = config.get_or_default("max_merging_distance", "", type=config_type_optional_float,
                                                     comment="Leave empty to use the gap closing distance.")
        linking_feature_penalties = config.get_or_default("linking_feature_penalties", "",
                                                          type=config_type_feature_weights,
                                                          comment="For example \"intensity: 1.0, quality: 0.5\".")
        alternative_cost_factor = config.get_or_default("alternative_cost_factor", "1.05", type=config_type_float,
                                                        comment="Cost of not linking, relative to the highest cost of"
                                                                " all possible links.")
        alternative_cost_percentile = config.get_or_default("alternative_cost_percentile", "100",
                                                            type=config_type_float,
                                                            comment="Percentile of all link costs that is used for"
                                                                    " the cost of not linking. 100 is the maximum.")
        max_workers = config.get_or_default("max_workers", "", type=config_type_optional_int,
                                            comment="Number of threads. Leave empty to use one per CPU.")

        return TrackingSettings(max_linking_distance=max_linking_distance,
                                max_gap_closing_distance=max_gap_closing_distance, max_frame_gap=max_frame_gap,
                                allow_gap_closing=allow_gap_closing, allow_splitting=allow_splitting,
                                allow_merging=allow_merging, linking_feature_penalties=linking_feature_penalties,
                                max_splitting_distance=max_splitting_distance,
                                max_merging_distance=max_merging_distance,
                                alternative_cost_factor=alternative_cost_factor,
                                alternative_cost_percentile=alternative_cost_percentile, max_workers=max_workers)

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, TrackingSettings) and other.to_dict() == self.to_dict()

    def __hash__(self) -> int:
        return hash((self._max_linking_distance, self._max_gap_closing_distance, self._max_frame_gap))

    def __repr__(self) -> str:
        return "TrackingSettings(" + ", ".join(f"{name}={value!r}" for name, value in self.to_dict().items()) + ")"

    def describe(self) -> str:
        """Gets a human-readable summary, used in the log of a tracking run."""
        lines = [f"max linking distance: {self._max_linking_distance}"]
        if self.gap_closing_enabled():
            lines.append(f"gap closing: max distance {self._max_gap_closing_distance},"
                         f" max frame gap {self._max_frame_gap}")
        else:
            lines.append("gap closing: disabled")
        lines.append(f"splitting: max distance {self.max_splitting_distance}" if self._allow_splitting
                     else "splitting: disabled")
        lines.append(f"merging: max distance {self.max_merging_distance}" if self._allow_merging
                     else "merging: disabled")
        if len(self._linking_feature_penalties) > 0:
            lines.append("feature penalties: " + _format_weights(self._linking_feature_penalties))
        return "; ".join(lines)
