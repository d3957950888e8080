import bisect
from typing import Dict, List, Iterable, Iterator, Optional, Mapping

from spot_tracker.core.spot import Spot


class _SpotsOfFrame:
    """Holds the spots of a single frame, ordered by id."""

    _ids: List[int]
    _spots: List[Spot]

    def __init__(self):
        self._ids = list()
        self._spots = list()

    def add(self, spot: Spot):
        index = bisect.bisect(self._ids, spot.id)
        self._ids.insert(index, spot.id)
        self._spots.insert(index, spot)

    def spots(self) -> List[Spot]:
        return self._spots

    def copy(self) -> "_SpotsOfFrame":
        copy = _SpotsOfFrame()
        copy._ids = list(self._ids)
        copy._spots = list(self._spots)
        return copy

    def __len__(self) -> int:
        return len(self._spots)


class SpotCollection:
    """The per-frame spot sets that are linked by the tracker. Every spot is stored in an arena by its id, and also
    indexed by frame.

    The linking code never modifies a collection; so while a tracking run is going on, don't add spots to it."""

    _spots_by_id: Dict[int, Spot]
    _spots_by_frame: Dict[int, _SpotsOfFrame]

    def __init__(self, spots: Iterable[Spot] = ()):
        self._spots_by_id = dict()
        self._spots_by_frame = dict()
        for spot in spots:
            self.add(spot)

    @staticmethod
    def from_frames(spots_by_frame: Mapping[int, Iterable[Spot]]) -> "SpotCollection":
        """Creates a collection from a dictionary frame -> spots. Raises ValueError if a spot is stored under the
        wrong frame."""
        collection = SpotCollection()
        for frame, spots in spots_by_frame.items():
            for spot in spots:
                if spot.frame != frame:
                    raise ValueError(f"{spot} was stored under frame {frame}")
                collection.add(spot)
        return collection

    def add(self, spot: Spot):
        """Adds a spot. Raises ValueError if another spot with the same id already exists."""
        if spot.id in self._spots_by_id:
            raise ValueError(f"A spot with id {spot.id} already exists")
        self._spots_by_id[spot.id] = spot

        spots_of_frame = self._spots_by_frame.get(spot.frame)
        if spots_of_frame is None:
            spots_of_frame = _SpotsOfFrame()
            self._spots_by_frame[spot.frame] = spots_of_frame
        spots_of_frame.add(spot)

    def get_spot(self, spot_id: int) -> Optional[Spot]:
        """Gets the spot with the given id, or None if there is no such spot."""
        return self._spots_by_id.get(spot_id)

    def of_frame(self, frame: int) -> List[Spot]:
        """Gets all spots of the given frame, ordered by id. Returns an empty list for unknown frames. Do not modify
        the returned list."""
        spots_of_frame = self._spots_by_frame.get(frame)
        if spots_of_frame is None:
            return []
        return spots_of_frame.spots()

    def frames(self) -> List[int]:
        """Gets all frames that contain at least one spot, in increasing order."""
        return sorted(self._spots_by_frame.keys())

    def first_frame(self) -> Optional[int]:
        """Gets the lowest frame index, or None if the collection is empty."""
        if len(self._spots_by_frame) == 0:
            return None
        return min(self._spots_by_frame.keys())

    def last_frame(self) -> Optional[int]:
        """Gets the highest frame index, or None if the collection is empty."""
        if len(self._spots_by_frame) == 0:
            return None
        return max(self._spots_by_frame.keys())

    def is_2d(self) -> bool:
        """Returns True if all spots have a z of exactly zero."""
        for spot in self._spots_by_id.values():
            if spot.z != 0:
                return False
        return True

    def copy(self) -> "SpotCollection":
        """Creates a copy of this collection. Spots are immutable, so they are shared with the copy."""
        copy = SpotCollection()
        copy._spots_by_id = dict(self._spots_by_id)
        copy._spots_by_frame = dict((frame, spots.copy()) for frame, spots in self._spots_by_frame.items())
        return copy

    def __len__(self) -> int:
        return len(self._spots_by_id)

    def __iter__(self) -> Iterator[Spot]:
        """Iterates over all spots, frame by frame, and within a frame by id."""
        for frame in self.frames():
            yield from self.of_frame(frame)

    def __contains__(self, item) -> bool:
        if isinstance(item, Spot):
            return item.id in self._spots_by_id
        return item in self._spots_by_id
