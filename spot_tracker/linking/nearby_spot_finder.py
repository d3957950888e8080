"""Contains functions that find the spots near other spots. These are used to find the candidate pairs of a cost
matrix: the pairs that are far apart are never put in the matrix."""
from typing import List, Sequence, Tuple

import numpy
from scipy.spatial import cKDTree

from spot_tracker.core.spot import Spot

# The KD tree is asked for slightly more than the maximum distance, after which the exact distances are checked
# again. This makes the boundary behave the same as Spot.distance(...) <= max_distance.
_SEARCH_RADIUS_MARGIN = 1e-9


def spots_to_array(spots: Sequence[Spot]) -> numpy.ndarray:
    """Gets an array of shape (len(spots), 3) with all coordinates."""
    if len(spots) == 0:
        return numpy.zeros((0, 3), dtype=numpy.float64)
    return numpy.array([spot.coordinates() for spot in spots], dtype=numpy.float64)


def find_candidate_pairs(sources: Sequence[Spot], targets: Sequence[Spot], max_distance: float
                         ) -> Tuple[numpy.ndarray, numpy.ndarray, numpy.ndarray]:
    """Finds all (source, target) pairs that are at most max_distance apart. Returns three arrays of equal length: the
    index of the source spot, the index of the target spot and the distance. The pairs are sorted by source index,
    then by target index."""
    if len(sources) == 0 or len(targets) == 0:
        return numpy.zeros(0, dtype=numpy.intp), numpy.zeros(0, dtype=numpy.intp), numpy.zeros(0, dtype=numpy.float64)

    source_coords = spots_to_array(sources)
    target_coords = spots_to_array(targets)
    if numpy.isinf(max_distance):
        # Everything is a candidate
        neighbors_of_sources = [range(len(targets))] * len(sources)
    else:
        tree = cKDTree(target_coords)
        neighbors_of_sources = tree.query_ball_point(source_coords, r=max_distance * (1 + _SEARCH_RADIUS_MARGIN))

    source_indices = []
    target_indices = []
    for source_index, neighbors in enumerate(neighbors_of_sources):
        for target_index in sorted(neighbors):
            source_indices.append(source_index)
            target_indices.append(target_index)
    source_indices = numpy.array(source_indices, dtype=numpy.intp)
    target_indices = numpy.array(target_indices, dtype=numpy.intp)

    distances = numpy.sqrt(numpy.sum((source_coords[source_indices] - target_coords[target_indices]) ** 2, axis=1))
    within_range = distances <= max_distance
    return source_indices[within_range], target_indices[within_range], distances[within_range]


def find_close_spots(spots: Sequence[Spot], *, around: Spot, max_distance: float) -> List[Spot]:
    """Finds all spots at most max_distance away from the given spot, ordered from closest to furthest."""
    _, target_indices, distances = find_candidate_pairs([around], spots, max_distance)
    order = numpy.argsort(distances, kind="stable")
    return [spots[target_indices[i]] for i in order]
