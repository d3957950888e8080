"""Links the spots of every frame to the spots of the next frame, by solving a linear assignment problem for every pair
of consecutive frames. The pairs are independent of each other, so they are solved on multiple threads."""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional, Tuple

from tqdm import tqdm

from spot_tracker.core import concurrent
from spot_tracker.core.concurrent import Cancellation
from spot_tracker.core.link import Link, LinkType
from spot_tracker.core.spot_collection import SpotCollection
from spot_tracker.linking import lap_solver
from spot_tracker.linking.cost_functions import CostFunction, CostFunctionFactory, default_cost_function_factory
from spot_tracker.linking.cost_matrix import AlternativeCostPolicy, build_cost_matrix
from spot_tracker.linking.settings import TrackingSettings

logger = logging.getLogger(__name__)


def link_frames(spots: SpotCollection, frame: int, *, max_distance: float, cost_function: CostFunction,
                policy: AlternativeCostPolicy, max_workers: Optional[int] = 1) -> List[Link]:
    """Links the spots of the given frame to the spots of the next frame. Returns an empty list if one of the frames
    has no spots."""
    sources = spots.of_frame(frame)
    targets = spots.of_frame(frame + 1)
    matrix = build_cost_matrix(sources, targets, max_distance=max_distance, cost_function=cost_function,
                               policy=policy, max_workers=max_workers)
    if matrix.is_empty():
        return []

    assignment = lap_solver.solve(matrix)
    links = list()
    for row, column in assignment.pairs():
        links.append(Link(sources[row].id, targets[column].id, matrix.get(row, column), LinkType.FRAME_TO_FRAME))
    return links


def link_frame_to_frame(spots: SpotCollection, settings: TrackingSettings, *,
                        cost_function_factory: CostFunctionFactory = default_cost_function_factory,
                        cancellation: Optional[Cancellation] = None, show_progress: bool = False) -> List[Link]:
    """Creates the frame-to-frame links for all frames. Every spot gets at most one link to the next frame and at most
    one link from the previous frame. The links are returned ordered by frame.

    Raises TrackingCancelled if the cancellation is triggered while running, and SolverError if one of the
    assignment problems could not be solved."""
    cost_function = cost_function_factory(settings.linking_feature_penalties)
    policy = AlternativeCostPolicy(settings.alternative_cost_factor, settings.alternative_cost_percentile)
    frames = [frame for frame in spots.frames() if len(spots.of_frame(frame + 1)) > 0]

    def link_frame_pair(frame: int) -> Tuple[int, List[Link]]:
        if cancellation is not None:
            cancellation.check()
        return frame, link_frames(spots, frame, max_distance=settings.max_linking_distance,
                                  cost_function=cost_function, policy=policy)

    worker_count = min(concurrent.get_worker_count(settings.max_workers), max(1, len(frames)))
    logger.info(f"Linking {len(frames)} pairs of frames on {worker_count} thread(s)")

    links_by_frame = dict()
    if worker_count <= 1:
        for frame in tqdm(frames, desc="Frame-to-frame linking", disable=not show_progress):
            links_by_frame[frame] = link_frame_pair(frame)[1]
    else:
        with ThreadPoolExecutor(max_workers=worker_count) as executor:
            futures = [executor.submit(link_frame_pair, frame) for frame in frames]
            try:
                for future in tqdm(as_completed(futures), total=len(futures),
                                   desc="Frame-to-frame linking", disable=not show_progress):
                    frame, links = future.result()
                    links_by_frame[frame] = links
            except BaseException:
                for future in futures:
                    future.cancel()
                raise

    # Every worker wrote its own frame; now put them together in frame order
    all_links = list()
    for frame in frames:
        all_links += links_by_frame[frame]
    logger.info(f"Created {len(all_links)} frame-to-frame links")
    return all_links
