"""Segments are the pieces of track created by frame-to-frame linking: chains of spots without any branches. They are
the building blocks for gap closing, splitting and merging."""
from typing import Dict, Iterable, List

from spot_tracker.core.link import Link
from spot_tracker.core.spot import Spot
from spot_tracker.core.spot_collection import SpotCollection


class Segment:
    """A chain of spots, one per frame, ordered by frame. A spot without any links forms a segment of its own."""

    _spots: List[Spot]

    def __init__(self, spots: List[Spot]):
        if len(spots) == 0:
            raise ValueError("A segment needs at least one spot")
        self._spots = spots

    def start(self) -> Spot:
        """Gets the first spot of this segment."""
        return self._spots[0]

    def end(self) -> Spot:
        """Gets the last spot of this segment."""
        return self._spots[-1]

    def spots(self) -> List[Spot]:
        """Gets all spots, ordered by frame. Do not modify the returned list."""
        return self._spots

    def splitting_candidates(self) -> List[Spot]:
        """Gets all spots that can be the origin of a splitting link: these are the spots that already have a link to
        the next spot in this segment, so all spots except the last."""
        return self._spots[:-1]

    def merging_candidates(self) -> List[Spot]:
        """Gets all spots that can be the destination of a merging link: these are the spots that already have a link
        from the previous spot in this segment, so all spots except the first."""
        return self._spots[1:]

    def __len__(self) -> int:
        return len(self._spots)

    def __repr__(self) -> str:
        return f"<Segment {self._spots[0].id}->{self._spots[-1].id}, frames {self._spots[0].frame}-" \
               f"{self._spots[-1].frame}>"


def find_segments(spots: SpotCollection, links: Iterable[Link]) -> List[Segment]:
    """Finds all segments. The links must form chains: every spot may have at most one link to the next frame and at
    most one link from the previous frame, otherwise ValueError is raised. Every spot of the collection ends up in
    exactly one segment. The segments are ordered by the frame and id of their first spot."""
    next_of: Dict[int, int] = dict()
    previous_of: Dict[int, int] = dict()
    for link in links:
        if link.source_id in next_of or link.target_id in previous_of:
            raise ValueError(f"Link {link.source_id}->{link.target_id} creates a branch; segments cannot branch")
        next_of[link.source_id] = link.target_id
        previous_of[link.target_id] = link.source_id

    segments = list()
    for spot in spots:  # Iterates in (frame, id) order
        if spot.id in previous_of:
            continue  # Not the start of a segment

        chain = [spot]
        next_id = next_of.get(spot.id)
        while next_id is not None:
            chain.append(spots.get_spot(next_id))
            next_id = next_of.get(next_id)
        segments.append(Segment(chain))
    return segments
