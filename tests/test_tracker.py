import unittest

import numpy

from spot_tracker.core.concurrent import Cancellation
from spot_tracker.core.link import LinkType
from spot_tracker.core.spot import Spot
from spot_tracker.core.spot_collection import SpotCollection
from spot_tracker.linking import tracker
from spot_tracker.linking.cost_functions import SquaredDistanceCost
from spot_tracker.linking.settings import TrackingSettings
from spot_tracker.linking.tracker import TrackModel, TrackingStatus


def _moving_spots() -> SpotCollection:
    """Three particles moving to the right. The second one is missing in frame 3, and the third one splits in frame
    4."""
    spots = SpotCollection()
    for frame in range(7):
        spots.add(Spot(100 + frame, frame, frame, 0))
        if frame != 3:
            spots.add(Spot(200 + frame, frame, frame, 20))
        spots.add(Spot(300 + frame, frame, frame, 40))
        if frame >= 5:
            spots.add(Spot(400 + frame, frame, frame, 43))
    return spots


class TestTracker(unittest.TestCase):

    def test_track(self):
        settings = TrackingSettings(max_linking_distance=3, max_gap_closing_distance=5, allow_splitting=True)

        result = tracker.track(_moving_spots(), settings)

        self.assertEqual(TrackingStatus.SUCCESS, result.status)
        graph = result.graph
        self.assertEqual(3, graph.track_count())
        self.assertEqual([(202, 204)], [link.ids() for link in graph.find_links_of_type(LinkType.GAP_CLOSING)])
        self.assertEqual([(304, 405)], [link.ids() for link in graph.find_links_of_type(LinkType.SPLITTING)])
        self.assertTrue(len(result.log) > 0)

    def test_link_constraints(self):
        settings = TrackingSettings(max_linking_distance=3, max_gap_closing_distance=5, max_frame_gap=3,
                                    allow_splitting=True, allow_merging=True)
        spots = _moving_spots()

        graph = tracker.track(spots, settings).graph

        for link in graph.find_links():
            source = spots.get_spot(link.source_id)
            target = spots.get_spot(link.target_id)
            if link.link_type == LinkType.GAP_CLOSING:
                self.assertTrue(2 <= target.frame - source.frame <= 3)
                self.assertLessEqual(source.distance(target), 5)
            else:
                self.assertEqual(1, target.frame - source.frame)
        for spot in spots:
            self.assertLessEqual(len(graph.find_futures(spot.id)), 2)
            self.assertLessEqual(len(graph.find_pasts(spot.id)), 2)

    def test_same_result_every_time(self):
        settings = TrackingSettings(max_linking_distance=3, allow_splitting=True, max_workers=3)
        spots = _moving_spots()

        first = tracker.track(spots, settings).graph
        second = tracker.track(spots, settings).graph

        self.assertEqual(first.find_links(), second.find_links())
        self.assertEqual([first.get_track_spots(track_id) for track_id in first.find_all_track_ids()],
                         [second.get_track_spots(track_id) for track_id in second.find_all_track_ids()])

    def test_no_segment_linking(self):
        settings = TrackingSettings(max_linking_distance=3, allow_gap_closing=False)

        graph = tracker.track(_moving_spots(), settings).graph

        self.assertEqual(5, graph.track_count())  # The gap and the split are not bridged
        self.assertEqual(len(graph.find_links_of_type(LinkType.FRAME_TO_FRAME)), graph.link_count())

    def test_no_spots(self):
        result = tracker.track(SpotCollection(), TrackingSettings())

        self.assertEqual(TrackingStatus.FAILED, result.status)
        self.assertIsNone(result.graph)
        self.assertIsNotNone(result.error_message)

    def test_invalid_settings(self):
        result = tracker.track(_moving_spots(), TrackingSettings(max_linking_distance=-1))

        self.assertEqual(TrackingStatus.FAILED, result.status)
        self.assertIsNone(result.graph)

    def test_non_numeric_feature(self):
        spots = SpotCollection([Spot(1, 0, 0, 0, features={"name": "cell"})])

        result = tracker.track(spots, TrackingSettings())

        self.assertEqual(TrackingStatus.FAILED, result.status)

    def test_cancelled(self):
        cancellation = Cancellation()
        cancellation.cancel()

        result = tracker.track(_moving_spots(), TrackingSettings(), cancellation=cancellation)

        self.assertTrue(result.is_cancelled())
        self.assertIsNone(result.graph)

    def test_model_keeps_old_graph(self):
        model = TrackModel(_moving_spots())
        settings = TrackingSettings(max_linking_distance=3)
        self.assertTrue(model.run_tracking(settings).is_success())
        graph = model.graph

        self.assertFalse(model.run_tracking(TrackingSettings(max_linking_distance=0)).is_success())
        cancellation = Cancellation()
        cancellation.cancel()
        self.assertTrue(model.run_tracking(settings, cancellation=cancellation).is_cancelled())

        self.assertIs(graph, model.graph)
        self.assertIs(settings, model.settings)

    def test_cancelled_before_segment_linking(self):
        model = TrackModel(_moving_spots())
        settings = TrackingSettings(max_linking_distance=3, max_gap_closing_distance=5)
        self.assertTrue(model.run_tracking(settings).is_success())
        graph = model.graph

        # Cancel after frame-to-frame linking is done, while the gap closing costs are being set up
        cancellation = Cancellation()
        factory_calls = list()

        def cost_function_factory(feature_penalties):
            factory_calls.append(feature_penalties)
            if len(factory_calls) == 2:
                cancellation.cancel()
            return SquaredDistanceCost(feature_penalties)

        result = model.run_tracking(settings, cost_function_factory=cost_function_factory, cancellation=cancellation)

        self.assertTrue(result.is_cancelled())
        self.assertIsNone(result.graph)
        self.assertEqual(2, len(factory_calls))
        self.assertIs(graph, model.graph)

    def test_numpy_feature_values(self):
        spots = SpotCollection([Spot(1, 0, 0, 0, features={"intensity": numpy.float32(2.5)}),
                                Spot(2, 1, 1, 0, features={"intensity": numpy.int64(3)})])

        result = tracker.track(spots, TrackingSettings(linking_feature_penalties={"intensity": 1}))

        self.assertTrue(result.is_success())
        self.assertEqual(1, result.graph.link_count())
