"""
BGP Error Taxonomy Tests

Tests NOTIFICATION code/subcode decoding and the codec exceptions.
"""

import unittest
from bgpsimple.bgp.errors import *
from bgpsimple.bgp.constants import *


class TestDescribe(unittest.TestCase):
    """Test two-level code/subcode lookup"""

    def test_cease_max_prefixes(self):
        self.assertEqual(describe(6, 1), ("Cease", "Maximum Number of Prefixes Reached"))

    def test_unknown_code(self):
        """Test absent code never raises"""
        self.assertEqual(describe(99, 3), ("unknown", "unknown"))

    def test_unknown_subcode(self):
        self.assertEqual(describe(ERR_OPEN_MESSAGE, 42), ("OPEN Message Error", "unknown"))

    def test_code_without_subcodes(self):
        """Test Hold Timer Expired has no subcode table"""
        self.assertEqual(describe(ERR_HOLD_TIMER_EXPIRED, 0), ("Hold Timer Expired", "unknown"))

    def test_all_codes_present(self):
        for code in range(1, 8):
            category, _ = describe(code, 1)
            self.assertNotEqual(category, "unknown")

    def test_selected_entries(self):
        self.assertEqual(describe(1, 2), ("Message Header Error", "Bad Message Length"))
        self.assertEqual(describe(2, 2), ("OPEN Message Error", "Bad Peer AS"))
        self.assertEqual(describe(3, 11), ("UPDATE Message Error", "Malformed AS_PATH"))
        self.assertEqual(describe(5, 3), ("Finite State Machine Error",
                                          "Receive Unexpected Message in Established State"))
        self.assertEqual(describe(6, 4), ("Cease", "Administrative Reset"))

    def test_taxonomy_is_read_only(self):
        with self.assertRaises(TypeError):
            ERROR_TAXONOMY[8] = ("New", {})
        with self.assertRaises(TypeError):
            ERROR_TAXONOMY[ERR_CEASE][1][99] = "New"


class TestFormatErrorData(unittest.TestCase):

    def test_hex(self):
        self.assertEqual(format_error_data(b'\xfd\xe9'), "fde9")

    def test_empty(self):
        self.assertEqual(format_error_data(b''), "")


class TestBGPError(unittest.TestCase):
    """Test exception classes carry code, subcode and data"""

    def test_default_message(self):
        error = CeaseError(2)
        self.assertEqual(error.error_code, ERR_CEASE)
        self.assertIn("Cease/Administrative Shutdown", str(error))

    def test_subclasses(self):
        self.assertEqual(MessageHeaderError(1).error_code, ERR_MESSAGE_HEADER)
        self.assertEqual(OpenMessageError(2).error_code, ERR_OPEN_MESSAGE)
        self.assertEqual(UpdateMessageError(3).error_code, ERR_UPDATE_MESSAGE)
        self.assertEqual(HoldTimerExpiredError().error_code, ERR_HOLD_TIMER_EXPIRED)
        self.assertEqual(FSMError(1).error_code, ERR_FSM)

    def test_helpers(self):
        error = bad_message_length(5000)
        self.assertEqual((error.error_subcode, error.data), (2, b'\x13\x88'))

        error = unsupported_version_number(3)
        self.assertEqual((error.error_code, error.error_subcode, error.data), (2, 1, b'\x00\x04'))

        error = bad_peer_as(65003, 65002)
        self.assertEqual(error.error_subcode, 2)
        self.assertIn("AS65003", str(error))

        self.assertEqual(unacceptable_hold_time(2).error_subcode, 6)
        self.assertEqual(unexpected_message(3).error_subcode, 3)
        self.assertEqual(hold_timer_expired().error_code, ERR_HOLD_TIMER_EXPIRED)


if __name__ == '__main__':
    unittest.main()
