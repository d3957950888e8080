import unittest

from spot_tracker.core.link import Link, LinkType
from spot_tracker.core.spot import Spot
from spot_tracker.core.spot_collection import SpotCollection
from spot_tracker.core.track_graph import TrackGraph


def _link(source_id: int, target_id: int, link_type: LinkType = LinkType.FRAME_TO_FRAME) -> Link:
    return Link(source_id, target_id, 1.0, link_type)


class TestTrackGraph(unittest.TestCase):

    def setUp(self):
        self.spots = SpotCollection([Spot(1, 0, 0, 0), Spot(2, 1, 0, 0), Spot(3, 2, 0, 0),
                                     Spot(4, 1, 5, 5), Spot(5, 2, 5, 5),
                                     Spot(6, 0, 9, 9)])

    def test_track_ids(self):
        graph = TrackGraph(self.spots, [_link(4, 5), _link(1, 2), _link(2, 3)])

        self.assertEqual([0, 1], graph.find_all_track_ids())
        self.assertEqual([1, 2, 3], [spot.id for spot in graph.get_track_spots(0)])
        self.assertEqual([4, 5], [spot.id for spot in graph.get_track_spots(1)])
        self.assertEqual(0, graph.get_track_id_of_spot(3))
        self.assertIsNone(graph.get_track_id_of_spot(6))  # Lonely spot, not in a track

    def test_track_ids_same_first_frame(self):
        spots = SpotCollection([Spot(8, 0, 0, 0), Spot(9, 1, 0, 0), Spot(3, 0, 5, 5), Spot(4, 1, 5, 5)])

        graph = TrackGraph(spots, [_link(8, 9), _link(3, 4)])

        self.assertEqual(0, graph.get_track_id_of_spot(3))
        self.assertEqual(1, graph.get_track_id_of_spot(8))

    def test_links(self):
        graph = TrackGraph(self.spots, [_link(2, 3), _link(1, 2), _link(1, 5, LinkType.GAP_CLOSING)])

        self.assertEqual([(1, 2), (1, 5), (2, 3)], [link.ids() for link in graph.find_links()])
        self.assertEqual([(1, 5)], [link.ids() for link in graph.find_links_of_type(LinkType.GAP_CLOSING)])
        self.assertEqual({2, 5}, graph.find_futures(1))
        self.assertEqual({1}, graph.find_pasts(5))
        self.assertTrue(graph.contains_link(1, 2))
        self.assertFalse(graph.contains_link(2, 1))
        self.assertEqual(LinkType.GAP_CLOSING, graph.get_link(1, 5).link_type)
        self.assertIsNone(graph.get_link(4, 5))
        self.assertEqual(1, graph.track_count())

    def test_invalid_links(self):
        graph = TrackGraph(self.spots)
        with self.assertRaises(ValueError):
            graph.replace_links([_link(2, 1)])  # Backwards in time
        with self.assertRaises(ValueError):
            graph.replace_links([_link(2, 4)])  # Same frame
        with self.assertRaises(ValueError):
            graph.replace_links([_link(1, 100)])  # Unknown spot
        with self.assertRaises(ValueError):
            graph.replace_links([_link(1, 2), _link(1, 2)])

    def test_failed_replace_keeps_old_links(self):
        graph = TrackGraph(self.spots, [_link(1, 2)])
        with self.assertRaises(ValueError):
            graph.replace_links([_link(2, 3), _link(3, 2)])
        self.assertEqual([(1, 2)], [link.ids() for link in graph.find_links()])

    def test_visibility(self):
        graph = TrackGraph(self.spots, [_link(1, 2), _link(4, 5)])

        graph.set_track_visible(1, False)
        self.assertFalse(graph.is_track_visible(1))
        self.assertEqual([0], graph.find_visible_track_ids())

        graph.replace_links([_link(1, 2), _link(4, 5)])
        self.assertEqual([0, 1], graph.find_visible_track_ids())

        with self.assertRaises(KeyError):
            graph.set_track_visible(2, False)

    def test_networkx_copy(self):
        graph = TrackGraph(self.spots, [_link(1, 2)])
        copy = graph.to_networkx_graph()
        copy.remove_edge(1, 2)

        self.assertTrue(graph.contains_link(1, 2))
        self.assertEqual(6, copy.number_of_nodes())
