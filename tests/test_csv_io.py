import csv
import os
import tempfile
import unittest

from spot_tracker.core import UserError
from spot_tracker.core.link import Link, LinkType
from spot_tracker.core.spot import Spot
from spot_tracker.core.spot_collection import SpotCollection
from spot_tracker.core.track_graph import TrackGraph
from spot_tracker.imaging import csv_io


class TestCsvIo(unittest.TestCase):

    def setUp(self):
        self._folder = tempfile.TemporaryDirectory()

    def tearDown(self):
        self._folder.cleanup()

    def _write(self, contents: str) -> str:
        file_name = os.path.join(self._folder.name, "spots.csv")
        with open(file_name, "w", encoding="UTF-8") as handle:
            handle.write(contents)
        return file_name

    def test_load_spots(self):
        file_name = self._write("id,frame,x,y,intensity\n1,0,1.5,2,100\n2,1,3,4,\n")

        spots = csv_io.load_spots_from_csv(file_name)

        self.assertEqual(2, len(spots))
        spot = spots.get_spot(1)
        self.assertEqual((0, 1.5, 2, 0), (spot.frame, spot.x, spot.y, spot.z))
        self.assertEqual(100, spot.get_feature("intensity"))
        self.assertIsNone(spots.get_spot(2).get_feature("intensity"))

    def test_load_3d_spots(self):
        file_name = self._write("id,frame,x,y,z,radius\n1,0,1,2,3,4\n")

        spot = csv_io.load_spots_from_csv(file_name).get_spot(1)

        self.assertEqual(3, spot.z)
        self.assertEqual(4, spot.radius)

    def test_missing_columns(self):
        file_name = self._write("id,x,y\n1,0,0\n")
        with self.assertRaises(UserError):
            csv_io.load_spots_from_csv(file_name)

    def test_too_few_values(self):
        file_name = self._write("id,frame,x,y\n1,0\n")
        with self.assertRaises(UserError) as context:
            csv_io.load_spots_from_csv(file_name)
        self.assertEqual("Invalid line", context.exception.title)

    def test_invalid_values(self):
        with self.assertRaises(UserError):
            csv_io.load_spots_from_csv(self._write("id,frame,x,y\n1,0,abc,0\n"))
        with self.assertRaises(UserError):
            csv_io.load_spots_from_csv(self._write("id,frame,x,y\n1,0.5,0,0\n"))
        with self.assertRaises(UserError):
            csv_io.load_spots_from_csv(self._write("id,frame,x,y\n1,0,0,0\n1,1,0,0\n"))

    def test_save_links(self):
        spots = SpotCollection([Spot(1, 0, 0, 0), Spot(2, 1, 1, 0), Spot(3, 3, 1, 0)])
        graph = TrackGraph(spots, [Link(1, 2, 1.0, LinkType.FRAME_TO_FRAME), Link(2, 3, 0.5, LinkType.GAP_CLOSING)])
        file_name = os.path.join(self._folder.name, "links.csv")

        csv_io.save_links_to_csv(graph, file_name)

        with open(file_name, newline="", encoding="UTF-8") as handle:
            rows = list(csv.reader(handle))
        self.assertEqual(["track_id", "source_id", "target_id", "link_type", "cost"], rows[0])
        self.assertEqual(["0", "1", "2", "frame-to-frame", "1.0"], rows[1])
        self.assertEqual(["0", "2", "3", "gap-closing", "0.5"], rows[2])
