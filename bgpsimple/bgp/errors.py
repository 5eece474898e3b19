"""
BGP Error Handling

Defines the NOTIFICATION error taxonomy (RFC 4271 Section 6, RFC 4486,
RFC 7313) and the exception classes raised by the message codec.

The taxonomy is a read-only two-level table: error code -> category name,
then subcode -> description. Lookups never raise; anything missing from the
table decodes to "unknown".
"""

import struct
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .constants import *

UNKNOWN = "unknown"


def _freeze(table: dict) -> Mapping:
    return MappingProxyType({
        code: (name, MappingProxyType(subcodes))
        for code, (name, subcodes) in table.items()
    })


ERROR_TAXONOMY = _freeze({
    ERR_MESSAGE_HEADER: ("Message Header Error", {
        1: "Connection Not Synchronized",
        2: "Bad Message Length",
        3: "Bad Message Type",
    }),
    ERR_OPEN_MESSAGE: ("OPEN Message Error", {
        1: "Unsupported Version Number",
        2: "Bad Peer AS",
        3: "Bad BGP Identifier",
        4: "Unsupported Optional Parameter",
        5: "Authentication Failure",
        6: "Unacceptable Hold Time",
        7: "Unsupported Capability",
    }),
    ERR_UPDATE_MESSAGE: ("UPDATE Message Error", {
        1: "Malformed Attribute List",
        2: "Unrecognized Well-known Attribute",
        3: "Missing Well-known Attribute",
        4: "Attribute Flags Error",
        5: "Attribute Length Error",
        6: "Invalid ORIGIN Attribute",
        7: "AS Routing Loop",
        8: "Invalid NEXT_HOP Attribute",
        9: "Optional Attribute Error",
        10: "Invalid Network Field",
        11: "Malformed AS_PATH",
    }),
    ERR_HOLD_TIMER_EXPIRED: ("Hold Timer Expired", {}),
    ERR_FSM: ("Finite State Machine Error", {
        1: "Receive Unexpected Message in OpenSent State",
        2: "Receive Unexpected Message in OpenConfirm State",
        3: "Receive Unexpected Message in Established State",
    }),
    ERR_CEASE: ("Cease", {
        1: "Maximum Number of Prefixes Reached",
        2: "Administrative Shutdown",
        3: "Peer De-configured",
        4: "Administrative Reset",
        5: "Connection Rejected",
        6: "Other Configuration Change",
        7: "Connection Collision Resolution",
        8: "Out of Resources",
    }),
    ERR_ROUTE_REFRESH: ("ROUTE-REFRESH Message Error", {
        1: "Invalid Message Length",
    }),
})


def describe(code: int, subcode: int) -> Tuple[str, str]:
    """
    Decode an error code/subcode pair

    Args:
        code: NOTIFICATION error code
        subcode: NOTIFICATION error subcode

    Returns:
        (category name, subcode description); "unknown" for absent entries
    """
    entry = ERROR_TAXONOMY.get(code)
    if entry is None:
        return (UNKNOWN, UNKNOWN)
    name, subcodes = entry
    return (name, subcodes.get(subcode, UNKNOWN))


def format_error_data(data: bytes) -> str:
    """Render NOTIFICATION data as hex, empty string when there is none"""
    return data.hex() if data else ""


class BGPError(Exception):
    """Base exception for BGP errors"""

    def __init__(self, error_code: int, error_subcode: int,
                 data: bytes = b'', message: Optional[str] = None):
        """
        Initialize BGP error

        Args:
            error_code: BGP error code
            error_subcode: BGP error subcode
            data: Error data bytes
            message: Human-readable message
        """
        self.error_code = error_code
        self.error_subcode = error_subcode
        self.data = data

        if not message:
            message = self._format_error_message()

        super().__init__(message)

    def _format_error_message(self) -> str:
        category, text = describe(self.error_code, self.error_subcode)
        return f"BGP Error: {category}/{text} (code={self.error_code}, subcode={self.error_subcode})"


class MessageHeaderError(BGPError):
    """Message Header Error (Error Code 1)"""

    def __init__(self, subcode: int, data: bytes = b'', message: Optional[str] = None):
        super().__init__(ERR_MESSAGE_HEADER, subcode, data, message)


class OpenMessageError(BGPError):
    """OPEN Message Error (Error Code 2)"""

    def __init__(self, subcode: int, data: bytes = b'', message: Optional[str] = None):
        super().__init__(ERR_OPEN_MESSAGE, subcode, data, message)


class UpdateMessageError(BGPError):
    """UPDATE Message Error (Error Code 3)"""

    def __init__(self, subcode: int, data: bytes = b'', message: Optional[str] = None):
        super().__init__(ERR_UPDATE_MESSAGE, subcode, data, message)


class HoldTimerExpiredError(BGPError):
    """Hold Timer Expired (Error Code 4)"""

    def __init__(self, data: bytes = b'', message: Optional[str] = None):
        super().__init__(ERR_HOLD_TIMER_EXPIRED, 0, data, message)


class FSMError(BGPError):
    """Finite State Machine Error (Error Code 5)"""

    def __init__(self, subcode: int = 0, data: bytes = b'', message: Optional[str] = None):
        super().__init__(ERR_FSM, subcode, data, message)


class CeaseError(BGPError):
    """Cease (Error Code 6)"""

    def __init__(self, subcode: int = 0, data: bytes = b'', message: Optional[str] = None):
        super().__init__(ERR_CEASE, subcode, data, message)


# Convenience constructors used by the codec and peer

def connection_not_synchronized() -> MessageHeaderError:
    """Connection Not Synchronized (1.1)"""
    return MessageHeaderError(1, message="Connection Not Synchronized")


def bad_message_length(length: int) -> MessageHeaderError:
    """Bad Message Length (1.2)"""
    data = struct.pack('!H', length)
    return MessageHeaderError(2, data, f"Bad Message Length: {length}")


def bad_message_type(msg_type: int) -> MessageHeaderError:
    """Bad Message Type (1.3)"""
    return MessageHeaderError(3, bytes([msg_type]), f"Bad Message Type: {msg_type}")


def unsupported_version_number(version: int) -> OpenMessageError:
    """Unsupported Version Number (2.1)"""
    data = struct.pack('!H', BGP_VERSION)
    return OpenMessageError(1, data, f"Unsupported Version: {version}")


def bad_peer_as(peer_as: int, expected_as: int) -> OpenMessageError:
    """Bad Peer AS (2.2)"""
    return OpenMessageError(2, message=f"Bad Peer AS: got AS{peer_as}, expected AS{expected_as}")


def unacceptable_hold_time(hold_time: int) -> OpenMessageError:
    """Unacceptable Hold Time (2.6)"""
    return OpenMessageError(6, message=f"Unacceptable Hold Time: {hold_time}")


def malformed_attribute_list() -> UpdateMessageError:
    """Malformed Attribute List (3.1)"""
    return UpdateMessageError(1, message="Malformed Attribute List")


def invalid_network_field() -> UpdateMessageError:
    """Invalid Network Field (3.10)"""
    return UpdateMessageError(10, message="Invalid Network Field")


def hold_timer_expired() -> HoldTimerExpiredError:
    """Hold Timer Expired (4)"""
    return HoldTimerExpiredError(message="Hold Timer Expired")


def unexpected_message(state_subcode: int) -> FSMError:
    """Unexpected message for the current FSM state (5.x)"""
    return FSMError(state_subcode, message="Finite State Machine Error")
