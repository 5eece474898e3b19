"""
BGP Communities Utilities Tests
"""

import unittest
from bgpsimple.bgp.communities import *
from bgpsimple.bgp.constants import *


class TestCommunityParsing(unittest.TestCase):
    """Test community parsing"""

    def test_parse_community_standard(self):
        """Test parsing standard AS:Value format"""
        comm = parse_community("65001:100")
        self.assertIsNotNone(comm)
        self.assertEqual(comm, (65001 << 16) | 100)

    def test_parse_community_wellknown(self):
        """Test parsing well-known community names"""
        self.assertEqual(parse_community("NO_EXPORT"), COMMUNITY_NO_EXPORT)
        self.assertEqual(parse_community("NO_ADVERTISE"), COMMUNITY_NO_ADVERTISE)
        self.assertEqual(parse_community("NO_EXPORT_SUBCONFED"), COMMUNITY_NO_EXPORT_SUBCONFED)
        self.assertEqual(parse_community("NOPEER"), COMMUNITY_NOPEER)

    def test_parse_community_invalid(self):
        """Test parsing invalid communities"""
        self.assertIsNone(parse_community("invalid"))
        self.assertIsNone(parse_community("65001"))
        self.assertIsNone(parse_community("65001:"))
        self.assertIsNone(parse_community(":100"))
        self.assertIsNone(parse_community("99999:100"))  # AS too large
        self.assertIsNone(parse_community("65001:70000"))  # Value too large


class TestCommunityFormatting(unittest.TestCase):
    """Test community formatting"""

    def test_format_community_standard(self):
        comm = (3356 << 16) | 666
        self.assertEqual(format_community(comm), "3356:666")

    def test_format_community_wellknown(self):
        self.assertEqual(format_community(COMMUNITY_NO_EXPORT), "NO_EXPORT")
        self.assertEqual(format_community(COMMUNITY_NO_ADVERTISE), "NO_ADVERTISE")


class TestCommunityList(unittest.TestCase):
    """Test the space separated lists used in dump files"""

    def test_parse_community_list(self):
        comms = parse_community_list("11686:12 11686:80")
        self.assertEqual(comms, [(11686 << 16) | 12, (11686 << 16) | 80])

    def test_parse_skips_invalid_entries(self):
        comms = parse_community_list("65001:100 bogus 65001:200")
        self.assertEqual(comms, [(65001 << 16) | 100, (65001 << 16) | 200])

    def test_parse_empty(self):
        self.assertEqual(parse_community_list(""), [])

    def test_format_community_list(self):
        comms = [(65001 << 16) | 100, COMMUNITY_NO_EXPORT]
        self.assertEqual(format_community_list(comms), "65001:100 NO_EXPORT")


if __name__ == '__main__':
    unittest.main()
