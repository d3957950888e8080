"""The complete tracker: frame-to-frame linking, followed by gap closing, splitting and merging of the resulting
segments. Use track(...) to get a TrackingResult, or a TrackModel if you want to keep the previous result around when a
new run fails or is cancelled.

The tracker never raises exceptions for expected problems. Invalid input, solver problems and cancellation all
result in a TrackingResult that tells you what happened."""
import logging
import numbers
import time
from enum import Enum
from typing import List, Optional

from spot_tracker.core import UserError
from spot_tracker.core.concurrent import Cancellation, TrackingCancelled
from spot_tracker.core.link import LinkType
from spot_tracker.core.spot_collection import SpotCollection
from spot_tracker.core.track_graph import TrackGraph
from spot_tracker.linking import frame_to_frame_linker, segment_linker
from spot_tracker.linking.cost_functions import CostFunctionFactory, default_cost_function_factory
from spot_tracker.linking.lap_solver import SolverError
from spot_tracker.linking.segments import find_segments
from spot_tracker.linking.settings import TrackingSettings

logger = logging.getLogger(__name__)


class TrackingStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TrackingResult:
    """The outcome of a tracking run. Only successful runs have a graph; a failed or cancelled run never exposes a
    partial result."""

    status: TrackingStatus
    graph: Optional[TrackGraph]
    error_message: Optional[str]
    log: List[str]

    def __init__(self, status: TrackingStatus, *, graph: Optional[TrackGraph] = None,
                 error_message: Optional[str] = None, log: Optional[List[str]] = None):
        self.status = status
        self.graph = graph
        self.error_message = error_message
        self.log = log if log is not None else list()

    def is_success(self) -> bool:
        return self.status == TrackingStatus.SUCCESS

    def is_cancelled(self) -> bool:
        return self.status == TrackingStatus.CANCELLED

    def __repr__(self) -> str:
        if self.status == TrackingStatus.FAILED:
            return f"<TrackingResult failed: {self.error_message}>"
        return f"<TrackingResult {self.status.value}>"


class _RunLog:
    """Collects the messages of a run, and also sends them to the logger."""

    messages: List[str]

    def __init__(self):
        self.messages = list()

    def info(self, message: str):
        logger.info(message)
        self.messages.append(message)

    def error(self, message: str):
        logger.error(message)
        self.messages.append(message)


def validate_spots(spots: SpotCollection):
    """Raises UserError if the spots cannot be tracked."""
    if len(spots) == 0:
        raise UserError("No spots", "There are no spots to track. Please run a spot detector first.")
    for spot in spots:
        if not spot.is_finite():
            raise UserError("Invalid spot", f"The {spot} has a coordinate or radius that is not a finite number.")
        for feature, value in spot.features.items():
            if not isinstance(value, numbers.Real):
                raise UserError("Invalid spot", f"The feature \"{feature}\" of {spot} is not a number: {value!r}")


def track(spots: SpotCollection, settings: TrackingSettings, *,
          cost_function_factory: CostFunctionFactory = default_cost_function_factory,
          cancellation: Optional[Cancellation] = None, show_progress: bool = False) -> TrackingResult:
    """Runs the full tracker on the given spots. The spots are not modified. Returns a result with the track graph if
    successful. The cost function factory turns a set of feature penalties into a cost function; by default the
    squared distance plus the feature penalties is used."""
    run_log = _RunLog()
    start_time = time.time()
    try:
        settings.validate()
        validate_spots(spots)
        run_log.info(f"Tracking {len(spots)} spots in {len(spots.frames())} frames; {settings.describe()}")

        links = frame_to_frame_linker.link_frame_to_frame(spots, settings,
                                                          cost_function_factory=cost_function_factory,
                                                          cancellation=cancellation, show_progress=show_progress)
        run_log.info(f"Frame-to-frame linking created {len(links)} links")

        if settings.segment_linking_enabled():
            segments = find_segments(spots, links)
            run_log.info(f"Found {len(segments)} track segments")
            if cancellation is not None:
                cancellation.check()
            segment_links = segment_linker.link_segments(segments, settings,
                                                         cost_function_factory=cost_function_factory,
                                                         cancellation=cancellation)
            for link_type in (LinkType.GAP_CLOSING, LinkType.SPLITTING, LinkType.MERGING):
                count = sum(1 for link in segment_links if link.link_type == link_type)
                if count > 0:
                    run_log.info(f"Created {count} {link_type} links")
            links += segment_links

        if cancellation is not None:
            cancellation.check()
        graph = TrackGraph(spots, links)
        run_log.info(f"Found {graph.track_count()} tracks with {graph.link_count()} links in"
                     f" {time.time() - start_time:.1f} seconds")
        return TrackingResult(TrackingStatus.SUCCESS, graph=graph, log=run_log.messages)
    except UserError as e:
        run_log.error(f"{e.title}: {e.body}")
        return TrackingResult(TrackingStatus.FAILED, error_message=f"{e.title}: {e.body}", log=run_log.messages)
    except SolverError as e:
        run_log.error(f"Could not solve the linking problem: {e}")
        return TrackingResult(TrackingStatus.FAILED, error_message=f"Could not solve the linking problem: {e}",
                              log=run_log.messages)
    except TrackingCancelled:
        run_log.info("Tracking was cancelled")
        return TrackingResult(TrackingStatus.CANCELLED, log=run_log.messages)


class TrackModel:
    """Holds the spots together with the most recent successful tracking result. A failed or cancelled run leaves the
    previous graph in place."""

    _spots: SpotCollection
    _graph: Optional[TrackGraph]
    _settings: Optional[TrackingSettings]

    def __init__(self, spots: SpotCollection):
        self._spots = spots
        self._graph = None
        self._settings = None

    @property
    def spots(self) -> SpotCollection:
        return self._spots

    @property
    def graph(self) -> Optional[TrackGraph]:
        """Gets the graph of the last successful run, or None if there was no successful run yet."""
        return self._graph

    @property
    def settings(self) -> Optional[TrackingSettings]:
        """Gets the settings that were used to create the current graph."""
        return self._settings

    def run_tracking(self, settings: TrackingSettings, *,
                     cost_function_factory: CostFunctionFactory = default_cost_function_factory,
                     cancellation: Optional[Cancellation] = None, show_progress: bool = False) -> TrackingResult:
        """Runs the tracker. The graph of this model is only replaced if the run was successful."""
        result = track(self._spots, settings, cost_function_factory=cost_function_factory,
                       cancellation=cancellation, show_progress=show_progress)
        if result.is_success():
            self._graph = result.graph
            self._settings = settings
        return result
