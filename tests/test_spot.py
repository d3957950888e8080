import math
import unittest

from spot_tracker.core.spot import Spot


class TestSpot(unittest.TestCase):

    def test_distance(self):
        self.assertEqual(5, Spot(0, 0, 0, 0).distance(Spot(1, 1, 3, 4)))
        self.assertEqual(25, Spot(0, 0, 0, 0).distance_squared(Spot(1, 1, 3, 4)))
        self.assertEqual(3, Spot(0, 0, 0, 0, 0).distance(Spot(1, 1, 0, 0, 3)))

    def test_equality_by_id(self):
        self.assertEqual(Spot(3, 0, 1, 1), Spot(3, 5, 2, 2))
        self.assertNotEqual(Spot(3, 0, 1, 1), Spot(4, 0, 1, 1))
        self.assertEqual(1, len({Spot(3, 0, 1, 1), Spot(3, 0, 1, 1)}))

    def test_invalid_frame(self):
        with self.assertRaises(ValueError):
            Spot(0, -1, 0, 0)
        with self.assertRaises(ValueError):
            Spot(0, 1.5, 0, 0)

    def test_features_are_read_only(self):
        features = {"intensity": 3.0}
        spot = Spot(0, 0, 0, 0, features=features)
        features["intensity"] = 4.0  # Changing the original dictionary doesn't change the spot

        self.assertEqual(3.0, spot.get_feature("intensity"))
        self.assertIsNone(spot.get_feature("quality"))
        with self.assertRaises(TypeError):
            spot.features["intensity"] = 5.0

    def test_is_finite(self):
        self.assertTrue(Spot(0, 0, 1, 2, 3).is_finite())
        self.assertFalse(Spot(0, 0, math.nan, 2, 3).is_finite())
        self.assertFalse(Spot(0, 0, 1, 2, 3, radius=math.inf).is_finite())
