import math
from types import MappingProxyType
from typing import Optional, Mapping, Dict, Any

import numpy


class Spot:
    """A detected spot. The spot is immutable: it is created by a detector, and the linking code only ever refers to
    it. Two spots are considered equal if they have the same id, so ids must be unique within a data set.

    For 2D data, just leave z at zero."""

    __slots__ = ["_id", "_frame", "_x", "_y", "_z", "_radius", "_features"]  # Optimization - Google "python slots"

    _id: int
    _frame: int
    _x: float
    _y: float
    _z: float
    _radius: float
    _features: Mapping[str, float]

    def __init__(self, id: int, frame: int, x: float, y: float, z: float = 0, *, radius: float = 1,
                 features: Optional[Dict[str, float]] = None):
        if int(frame) != frame or frame < 0:
            raise ValueError(f"Frame must be a non-negative integer, got {frame}")
        self._id = int(id)
        self._frame = int(frame)
        self._x = float(x)
        self._y = float(y)
        self._z = float(z)
        self._radius = float(radius)
        self._features = MappingProxyType(dict(features) if features is not None else dict())

    @property
    def id(self) -> int:
        return self._id

    @property
    def frame(self) -> int:
        return self._frame

    @property
    def x(self) -> float:
        return self._x

    @property
    def y(self) -> float:
        return self._y

    @property
    def z(self) -> float:
        return self._z

    @property
    def radius(self) -> float:
        return self._radius

    @property
    def features(self) -> Mapping[str, float]:
        """Read-only view of the features of this spot, like intensity or quality."""
        return self._features

    def get_feature(self, name: str) -> Optional[float]:
        """Gets the feature with the given name, or None if this spot doesn't have that feature."""
        return self._features.get(name)

    def coordinates(self) -> numpy.ndarray:
        """Gets the x, y and z coordinates as a numpy array."""
        return numpy.array([self._x, self._y, self._z], dtype=numpy.float64)

    def distance_squared(self, other: "Spot") -> float:
        """Gets the squared distance. Working with squared distances instead of normal ones gives a much better
        performance, as the expensive sqrt(..) function can be avoided."""
        return (self._x - other._x) ** 2 + (self._y - other._y) ** 2 + (self._z - other._z) ** 2

    def distance(self, other: "Spot") -> float:
        """Gets the Euclidean distance to the other spot."""
        return math.sqrt(self.distance_squared(other))

    def is_finite(self) -> bool:
        """Returns False if any of the coordinates or the radius is NaN or infinite."""
        return math.isfinite(self._x) and math.isfinite(self._y) and math.isfinite(self._z) \
               and math.isfinite(self._radius)

    def __hash__(self) -> int:
        return hash(self._id)

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, Spot) and other._id == self._id

    def __repr__(self) -> str:
        return f"Spot({self._id}, {self._frame}, {self._x:.2f}, {self._y:.2f}, {self._z:.2f})"

    def __str__(self) -> str:
        return f"spot {self._id} at ({self._x:.2f}, {self._y:.2f}, {self._z:.2f}) in frame {self._frame}"
