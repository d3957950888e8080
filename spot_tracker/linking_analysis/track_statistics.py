"""Calculates simple statistics of tracks, like their duration and the distance travelled. The results are cached in
the track graph, until the links of the graph change."""
from typing import NamedTuple, Dict, List

from spot_tracker.core.link import LinkType
from spot_tracker.core.track_graph import TrackGraph


class TrackStatistics(NamedTuple):
    """Statistics of a single track."""

    spot_count: int
    link_count: int
    first_frame: int
    last_frame: int
    gap_count: int  # Number of gap closing links
    split_count: int  # Number of spots with more than one future
    merge_count: int  # Number of spots with more than one past
    total_distance: float  # Sum of the lengths of all links
    max_displacement: float  # Largest distance between the first spot and any other spot of the track

    @property
    def duration(self) -> int:
        """Number of frames between the first and last spot."""
        return self.last_frame - self.first_frame

    @property
    def mean_link_length(self) -> float:
        if self.link_count == 0:
            return 0.0
        return self.total_distance / self.link_count


def get_track_statistics(graph: TrackGraph, track_id: int) -> TrackStatistics:
    """Gets the statistics of a track. Raises KeyError for unknown track ids."""
    cached = graph.get_cached_statistics(track_id)
    if cached is not None:
        return cached

    spots = graph.get_track_spots(track_id)  # Sorted by frame
    links = graph.get_track_links(track_id)
    first_spot = spots[0]

    total_distance = 0.0
    for link in links:
        total_distance += graph.get_spot(link.source_id).distance(graph.get_spot(link.target_id))

    statistics = TrackStatistics(
        spot_count=len(spots),
        link_count=len(links),
        first_frame=spots[0].frame,
        last_frame=spots[-1].frame,
        gap_count=sum(1 for link in links if link.link_type == LinkType.GAP_CLOSING),
        split_count=sum(1 for spot in spots if len(graph.find_futures(spot.id)) > 1),
        merge_count=sum(1 for spot in spots if len(graph.find_pasts(spot.id)) > 1),
        total_distance=total_distance,
        max_displacement=max(first_spot.distance(spot) for spot in spots))
    graph.set_cached_statistics(track_id, statistics)
    return statistics


def get_all_track_statistics(graph: TrackGraph) -> Dict[int, TrackStatistics]:
    """Gets the statistics of all tracks, by track id."""
    return dict((track_id, get_track_statistics(graph, track_id)) for track_id in graph.find_all_track_ids())


def find_track_ids_with_min_duration(graph: TrackGraph, min_duration: int) -> List[int]:
    """Finds all tracks that span at least the given number of frames. Useful for filtering out short tracks."""
    return [track_id for track_id in graph.find_all_track_ids()
            if get_track_statistics(graph, track_id).duration >= min_duration]
