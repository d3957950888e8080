import unittest

from spot_tracker.core.link import Link, LinkType
from spot_tracker.core.spot import Spot
from spot_tracker.core.spot_collection import SpotCollection
from spot_tracker.linking.segments import find_segments, Segment


def _link(source_id: int, target_id: int) -> Link:
    return Link(source_id, target_id, 1.0, LinkType.FRAME_TO_FRAME)


class TestSegments(unittest.TestCase):

    def test_find_segments(self):
        spots = SpotCollection([Spot(1, 0, 0, 0), Spot(2, 1, 0, 0), Spot(3, 2, 0, 0),
                                Spot(4, 1, 5, 5), Spot(5, 2, 5, 5),
                                Spot(6, 0, 9, 9)])
        links = [_link(1, 2), _link(2, 3), _link(4, 5)]

        segments = find_segments(spots, links)

        self.assertEqual([[1, 2, 3], [6], [4, 5]], [[spot.id for spot in segment.spots()] for segment in segments])

    def test_candidates(self):
        segment = Segment([Spot(1, 0, 0, 0), Spot(2, 1, 0, 0), Spot(3, 2, 0, 0)])

        self.assertEqual(1, segment.start().id)
        self.assertEqual(3, segment.end().id)
        self.assertEqual([1, 2], [spot.id for spot in segment.splitting_candidates()])
        self.assertEqual([2, 3], [spot.id for spot in segment.merging_candidates()])

    def test_single_spot(self):
        segment = Segment([Spot(1, 0, 0, 0)])

        self.assertIs(segment.start(), segment.end())
        self.assertEqual([], segment.splitting_candidates())
        self.assertEqual([], segment.merging_candidates())

    def test_branch_not_allowed(self):
        spots = SpotCollection([Spot(1, 0, 0, 0), Spot(2, 1, 0, 0), Spot(3, 1, 1, 0)])
        with self.assertRaises(ValueError):
            find_segments(spots, [_link(1, 2), _link(1, 3)])

    def test_empty_segment(self):
        with self.assertRaises(ValueError):
            Segment([])
