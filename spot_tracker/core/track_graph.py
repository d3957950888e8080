"""The result of tracking: all spots, connected by links. Connected groups of spots form tracks."""
from typing import Dict, Iterable, List, Optional, Set, Any

import networkx

from spot_tracker.core.link import Link, LinkType
from spot_tracker.core.spot import Spot
from spot_tracker.core.spot_collection import SpotCollection


class TrackGraph:
    """Holds the spots (by id) and the links between them. Internally, the links are stored in a directed NetworkX
    graph with the spot ids as nodes, so the graph doesn't hold any references to the spot objects themselves.

    Tracks are the connected components of the graph that contain at least one link. A spot without any links is not
    part of a track. Track ids start at 0 and are assigned in order of the first frame of the track; if two tracks start
    in the same frame, the track with the lowest spot id in that frame comes first. This makes the ids the same every
    time you run the tracker on the same data.

    The links can only be changed all at once using replace_links(...), which is what the tracker does after every
    run. Track statistics are cached, and the cache is cleared whenever the links change."""

    _spots: SpotCollection
    _graph: networkx.DiGraph
    _track_of_spot: Dict[int, int]  # Spot id -> track id
    _spots_of_track: List[List[int]]  # Track id -> spot ids, sorted by (frame, id)
    _hidden_tracks: Set[int]
    _statistics_cache: Dict[int, Any]  # Track id -> TrackStatistics, filled by linking_analysis.track_statistics

    def __init__(self, spots: SpotCollection, links: Iterable[Link] = ()):
        self._spots = spots
        self._graph = networkx.DiGraph()
        self._graph.add_nodes_from(spot.id for spot in spots)
        self.replace_links(links)

    def replace_links(self, links: Iterable[Link]):
        """Removes all existing links, and adds the given links instead. Raises ValueError for links between unknown
        spots, for links that don't go forward in time and for duplicate links. All track ids are recalculated, and
        all tracks become visible again."""
        new_graph = networkx.DiGraph()
        new_graph.add_nodes_from(self._graph.nodes)
        for link in links:
            source = self._spots.get_spot(link.source_id)
            target = self._spots.get_spot(link.target_id)
            if source is None or target is None:
                raise ValueError(f"Link {link.source_id}->{link.target_id} refers to an unknown spot")
            if target.frame <= source.frame:
                raise ValueError(f"Link {link.source_id}->{link.target_id} doesn't go forward in time")
            if new_graph.has_edge(link.source_id, link.target_id):
                raise ValueError(f"Link {link.source_id}->{link.target_id} was added twice")
            new_graph.add_edge(link.source_id, link.target_id, cost=link.cost, link_type=link.link_type)

        self._graph = new_graph
        self._hidden_tracks = set()
        self._statistics_cache = dict()
        self._assign_track_ids()

    def _assign_track_ids(self):
        components = list()
        for component in networkx.weakly_connected_components(self._graph):
            if len(component) < 2:
                continue  # Lonely spot, not a track
            spots = sorted((self._spots.get_spot(spot_id) for spot_id in component),
                           key=lambda spot: (spot.frame, spot.id))
            components.append([spot.id for spot in spots])
        components.sort(key=lambda spot_ids: (self._spots.get_spot(spot_ids[0]).frame, spot_ids[0]))

        self._spots_of_track = components
        self._track_of_spot = dict()
        for track_id, spot_ids in enumerate(components):
            for spot_id in spot_ids:
                self._track_of_spot[spot_id] = track_id

    @property
    def spots(self) -> SpotCollection:
        """Gets all spots, including the ones that are not part of any track."""
        return self._spots

    def get_spot(self, spot_id: int) -> Optional[Spot]:
        return self._spots.get_spot(spot_id)

    def spot_count(self) -> int:
        return len(self._spots)

    def link_count(self) -> int:
        return self._graph.number_of_edges()

    def track_count(self) -> int:
        return len(self._spots_of_track)

    def find_all_track_ids(self) -> List[int]:
        """Gets the ids of all tracks, in increasing order."""
        return list(range(len(self._spots_of_track)))

    def _check_track_id(self, track_id: int):
        if track_id < 0 or track_id >= len(self._spots_of_track):
            raise KeyError(f"No track with id {track_id}")

    def get_track_spots(self, track_id: int) -> List[Spot]:
        """Gets all spots of the given track, ordered by frame and then by id. Raises KeyError for unknown track ids."""
        self._check_track_id(track_id)
        return [self._spots.get_spot(spot_id) for spot_id in self._spots_of_track[track_id]]

    def get_track_links(self, track_id: int) -> List[Link]:
        """Gets all links of the given track, ordered by the frame of their source spot."""
        self._check_track_id(track_id)
        links = list()
        for spot_id in self._spots_of_track[track_id]:
            links += self._links_from(spot_id)
        return links

    def get_track_id_of_spot(self, spot_id: int) -> Optional[int]:
        """Gets the track id of the given spot, or None if the spot has no links."""
        return self._track_of_spot.get(spot_id)

    def _links_from(self, spot_id: int) -> List[Link]:
        return [Link(spot_id, target_id, data["cost"], data["link_type"])
                for target_id, data in sorted(self._graph.succ[spot_id].items())]

    def find_links(self) -> List[Link]:
        """Gets all links, ordered by the frame and id of the source spot, then by the id of the target spot."""
        links = list()
        for spot in self._spots:
            links += self._links_from(spot.id)
        return links

    def find_links_of_type(self, link_type: LinkType) -> List[Link]:
        """Gets all links of the given type."""
        return [link for link in self.find_links() if link.link_type == link_type]

    def contains_link(self, source_id: int, target_id: int) -> bool:
        return self._graph.has_edge(source_id, target_id)

    def get_link(self, source_id: int, target_id: int) -> Optional[Link]:
        """Gets the link between the two spots, or None if they are not linked."""
        if not self._graph.has_edge(source_id, target_id):
            return None
        data = self._graph.edges[source_id, target_id]
        return Link(source_id, target_id, data["cost"], data["link_type"])

    def find_futures(self, spot_id: int) -> Set[int]:
        """Gets the ids of all spots that the given spot links to. If there are two, the spot splits."""
        if spot_id not in self._graph:
            return set()
        return set(self._graph.successors(spot_id))

    def find_pasts(self, spot_id: int) -> Set[int]:
        """Gets the ids of all spots that link to the given spot. If there are two, two tracks merge here."""
        if spot_id not in self._graph:
            return set()
        return set(self._graph.predecessors(spot_id))

    def set_track_visible(self, track_id: int, visible: bool):
        """Used by track filters to hide tracks. Visibility is reset when the links are replaced."""
        self._check_track_id(track_id)
        if visible:
            self._hidden_tracks.discard(track_id)
        else:
            self._hidden_tracks.add(track_id)

    def is_track_visible(self, track_id: int) -> bool:
        self._check_track_id(track_id)
        return track_id not in self._hidden_tracks

    def find_visible_track_ids(self) -> List[int]:
        return [track_id for track_id in range(len(self._spots_of_track)) if track_id not in self._hidden_tracks]

    def get_cached_statistics(self, track_id: int) -> Optional[Any]:
        """Used by linking_analysis.track_statistics to cache its results."""
        return self._statistics_cache.get(track_id)

    def set_cached_statistics(self, track_id: int, statistics: Any):
        self._check_track_id(track_id)
        self._statistics_cache[track_id] = statistics

    def to_networkx_graph(self) -> networkx.DiGraph:
        """Gets a copy of the link graph, with spot ids as nodes and "cost" and "link_type" as edge attributes. Changes
        to the copy don't affect this object."""
        return self._graph.copy()
