"""Connects the segments from frame-to-frame linking using gap closing, splitting and merging.

All three kinds of links are decided in one single assignment problem. The rows of the cost matrix are the segment
ends, followed by the spots that can split off a new segment. The columns are the segment starts, followed by the spots
that another segment can merge into::

                          | segment starts | merging candidates |
    segment ends          | gap closing    | merging            |
    splitting candidates  | splitting      | (nothing)          |

Because every row and column can be used only once, the result is always consistent: a segment end cannot both close
a gap and merge, and a spot gets at most one extra link from splitting or merging.
"""
import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from spot_tracker.core import concurrent
from spot_tracker.core.concurrent import Cancellation
from spot_tracker.core.link import Link, LinkType
from spot_tracker.core.spot import Spot
from spot_tracker.core.typing import CostEntry
from spot_tracker.linking import lap_solver
from spot_tracker.linking.cost_functions import CostFunction, CostFunctionFactory, default_cost_function_factory
from spot_tracker.linking.cost_matrix import AlternativeCostPolicy, SparseCostMatrix, build_cost_matrix_from_entries
from spot_tracker.linking.nearby_spot_finder import find_candidate_pairs
from spot_tracker.linking.segments import Segment
from spot_tracker.linking.settings import TrackingSettings

logger = logging.getLogger(__name__)


class _Indexed:
    """A list of spots, together with an index of the positions in that list by frame."""

    spots: List[Spot]
    offset: int  # Row or column number of the first spot
    _by_frame: Dict[int, List[int]]

    def __init__(self, spots: List[Spot], offset: int):
        self.spots = spots
        self.offset = offset
        self._by_frame = defaultdict(list)
        for index, spot in enumerate(spots):
            self._by_frame[spot.frame].append(index)

    def frames(self) -> List[int]:
        return sorted(self._by_frame.keys())

    def indices_of_frame(self, frame: int) -> List[int]:
        return self._by_frame.get(frame, [])


class _CandidateCategory:
    """One of gap closing, splitting or merging: which rows may link to which columns."""

    sources: _Indexed
    targets: _Indexed
    frame_differences: range
    max_distance: float
    cost_function: CostFunction

    def __init__(self, sources: _Indexed, targets: _Indexed, frame_differences: range, max_distance: float,
                 cost_function: CostFunction):
        self.sources = sources
        self.targets = targets
        self.frame_differences = frame_differences
        self.max_distance = max_distance
        self.cost_function = cost_function

    def find_entries_of_frame(self, frame: int) -> List[CostEntry]:
        """Finds all entries with a source in the given frame."""
        source_indices = self.sources.indices_of_frame(frame)
        sources = [self.sources.spots[i] for i in source_indices]
        entries = list()
        for frame_difference in self.frame_differences:
            target_indices = self.targets.indices_of_frame(frame + frame_difference)
            if len(target_indices) == 0:
                continue
            targets = [self.targets.spots[i] for i in target_indices]
            pair_sources, pair_targets, _ = find_candidate_pairs(sources, targets, self.max_distance)
            for source_index, target_index in zip(pair_sources.tolist(), pair_targets.tolist()):
                source = sources[source_index]
                target = targets[target_index]
                entries.append((self.sources.offset + source_indices[source_index],
                                self.targets.offset + target_indices[target_index],
                                float(self.cost_function(source, target))))
        return entries


def build_segment_cost_matrix(segments: Sequence[Segment], settings: TrackingSettings, *,
                              cost_function_factory: CostFunctionFactory = default_cost_function_factory
                              ) -> Tuple[SparseCostMatrix, List[Spot], List[Spot]]:
    """Builds the cost matrix described in the module docstring. Returns the matrix, the spot of every row and the
    spot of every column."""
    ends = _Indexed([segment.end() for segment in segments], offset=0)
    starts = _Indexed([segment.start() for segment in segments], offset=0)
    row_spots = list(ends.spots)
    column_spots = list(starts.spots)

    categories = list()
    if settings.gap_closing_enabled():
        categories.append(_CandidateCategory(
            ends, starts, range(2, settings.max_frame_gap + 1), settings.max_gap_closing_distance,
            cost_function_factory(settings.gap_closing_feature_penalties)))
    if settings.allow_merging:
        merging_candidates = _Indexed([spot for segment in segments for spot in segment.merging_candidates()],
                                      offset=len(column_spots))
        column_spots += merging_candidates.spots
        categories.append(_CandidateCategory(
            ends, merging_candidates, range(1, 2), settings.max_merging_distance,
            cost_function_factory(settings.merging_feature_penalties)))
    if settings.allow_splitting:
        splitting_candidates = _Indexed([spot for segment in segments for spot in segment.splitting_candidates()],
                                        offset=len(row_spots))
        row_spots += splitting_candidates.spots
        categories.append(_CandidateCategory(
            splitting_candidates, starts, range(1, 2), settings.max_splitting_distance,
            cost_function_factory(settings.splitting_feature_penalties)))

    # Every (category, source frame) combination is evaluated as a separate unit of work
    work = [(category, frame) for category in categories for frame in category.sources.frames()]
    entry_lists = concurrent.map_in_parallel(lambda unit: unit[0].find_entries_of_frame(unit[1]), work,
                                             max_workers=settings.max_workers)
    entries = [entry for entry_list in entry_lists for entry in entry_list]

    policy = AlternativeCostPolicy(settings.alternative_cost_factor, settings.alternative_cost_percentile)
    matrix = build_cost_matrix_from_entries(len(row_spots), len(column_spots), entries, policy=policy)
    logger.debug(f"Built segment cost matrix: {len(ends.spots)} segment ends, {len(row_spots) - len(ends.spots)}"
                 f" splitting candidates, {len(starts.spots)} segment starts,"
                 f" {len(column_spots) - len(starts.spots)} merging candidates, {matrix.entry_count()} entries")
    return matrix, row_spots, column_spots


def link_segments(segments: Sequence[Segment], settings: TrackingSettings, *,
                  cost_function_factory: CostFunctionFactory = default_cost_function_factory,
                  cancellation: Optional[Cancellation] = None) -> List[Link]:
    """Creates the gap closing, splitting and merging links between the given segments. Categories that are disabled
    in the settings are left out of the problem altogether. Returns the new links only; the frame-to-frame links
    that made up the segments are not included.

    Raises TrackingCancelled if cancelled before the solve, and SolverError if the problem could not be solved."""
    if not settings.segment_linking_enabled() or len(segments) == 0:
        return []

    matrix, row_spots, column_spots = build_segment_cost_matrix(segments, settings,
                                                                cost_function_factory=cost_function_factory)
    if cancellation is not None:
        cancellation.check()
    if matrix.is_empty():
        logger.info("No candidates for gap closing, splitting or merging")
        return []

    assignment = lap_solver.solve(matrix)
    segment_count = len(segments)
    links = list()
    for row, column in assignment.pairs():
        if row < segment_count:
            link_type = LinkType.GAP_CLOSING if column < segment_count else LinkType.MERGING
        else:
            link_type = LinkType.SPLITTING
        links.append(Link(row_spots[row].id, column_spots[column].id, matrix.get(row, column), link_type))

    links.sort(key=Link.ids)
    logger.info(f"Created {len(links)} segment links: "
                + ", ".join(f"{sum(1 for link in links if link.link_type == link_type)} {link_type}"
                            for link_type in (LinkType.GAP_CLOSING, LinkType.SPLITTING, LinkType.MERGING)))
    return links
