import unittest

from spot_tracker.core.link import LinkType, Link


class TestLink(unittest.TestCase):

    def test_link_type_names(self):
        for link_type in LinkType:
            self.assertEqual(link_type, LinkType.from_name(str(link_type)))
        with self.assertRaises(ValueError):
            LinkType.from_name("teleport")

    def test_ids(self):
        self.assertEqual((3, 4), Link(3, 4, 1.5, LinkType.MERGING).ids())
