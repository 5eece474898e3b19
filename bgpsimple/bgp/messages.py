"""
BGP Message Encoding/Decoding (RFC 4271 Section 4)

This module implements the BGP-4 message types a single injecting peer
needs:
- OPEN (Type 1)
- UPDATE (Type 2)
- NOTIFICATION (Type 3)
- KEEPALIVE (Type 4)

Decoding raises the matching BGPError subclass so the caller can answer
with a NOTIFICATION carrying the right code and subcode.
"""

import socket
import struct
from typing import Dict, List, Optional, Tuple

from .constants import *
from .errors import (
    OpenMessageError, invalid_network_field,
    bad_message_length, bad_message_type, connection_not_synchronized,
    malformed_attribute_list,
)
from .attributes import (
    PathAttribute, OriginAttribute, ASPathAttribute, NextHopAttribute,
    MEDAttribute, LocalPrefAttribute, AtomicAggregateAttribute,
    AggregatorAttribute, CommunitiesAttribute,
    encode_path_attributes, decode_path_attributes,
)


class BGPMessage:
    """
    Base class for all BGP messages (RFC 4271 Section 4.1)

    All BGP messages have a fixed 19-byte header:
    - Marker (16 bytes): All 1s for no authentication
    - Length (2 bytes): Total message length including header
    - Type (1 byte): Message type code
    """

    def __init__(self, msg_type: int):
        self.msg_type = msg_type

    def encode(self) -> bytes:
        """Encode message to wire format"""
        raise NotImplementedError("Subclasses must implement encode()")

    @staticmethod
    def parse_header(data: bytes) -> Tuple[int, int]:
        """
        Validate a BGP message header

        Args:
            data: At least BGP_HEADER_SIZE bytes

        Returns:
            Tuple of (message_type, length)

        Raises:
            MessageHeaderError: bad marker, length or type
        """
        if len(data) < BGP_HEADER_SIZE:
            raise bad_message_length(len(data))

        marker, length, msg_type = struct.unpack('!16sHB', data[:BGP_HEADER_SIZE])

        if marker != BGP_MARKER:
            raise connection_not_synchronized()

        if length < BGP_HEADER_SIZE or length > BGP_MAX_MESSAGE_SIZE:
            raise bad_message_length(length)

        if msg_type not in MESSAGE_TYPE_NAMES:
            raise bad_message_type(msg_type)

        return (msg_type, length)

    @staticmethod
    def decode(data: bytes) -> 'BGPMessage':
        """
        Decode a complete message from wire format

        Raises:
            BGPError: header or body is malformed
        """
        msg_type, length = BGPMessage.parse_header(data)

        if len(data) < length:
            raise bad_message_length(len(data))

        payload = data[BGP_HEADER_SIZE:length]
        decoder = MESSAGE_CLASSES[msg_type]
        return decoder.decode_payload(payload)

    def _build_header(self, payload: bytes) -> bytes:
        length = BGP_HEADER_SIZE + len(payload)
        return BGP_MARKER + struct.pack('!HB', length, self.msg_type) + payload


class BGPOpen(BGPMessage):
    """
    BGP OPEN Message (RFC 4271 Section 4.2)

    Format:
    - Version (1 byte): BGP version (4)
    - My Autonomous System (2 bytes): Sender's AS number
    - Hold Time (2 bytes): Proposed hold time in seconds
    - BGP Identifier (4 bytes): Sender's BGP router ID
    - Optional Parameters Length (1 byte)
    - Optional Parameters (variable)

    Optional parameters are carried through undecoded.
    """

    def __init__(self, version: int, my_as: int, hold_time: int,
                 bgp_identifier: str, opt_params: bytes = b''):
        super().__init__(MSG_OPEN)
        self.version = version
        self.my_as = my_as
        self.hold_time = hold_time
        self.bgp_identifier = bgp_identifier
        self.opt_params = opt_params

    def encode(self) -> bytes:
        payload = struct.pack('!BHH4sB',
                              self.version,
                              self.my_as,
                              self.hold_time,
                              socket.inet_aton(self.bgp_identifier),
                              len(self.opt_params))
        return self._build_header(payload + self.opt_params)

    @classmethod
    def decode_payload(cls, payload: bytes) -> 'BGPOpen':
        if len(payload) < 10:
            raise bad_message_length(BGP_HEADER_SIZE + len(payload))

        version, my_as, hold_time, bgp_id, opt_param_len = struct.unpack('!BHH4sB', payload[:10])

        if len(payload) != 10 + opt_param_len:
            raise OpenMessageError(0, message="OPEN optional parameter length mismatch")

        return cls(version, my_as, hold_time, socket.inet_ntoa(bgp_id), payload[10:])


class BGPKeepalive(BGPMessage):
    """BGP KEEPALIVE Message (RFC 4271 Section 4.4), header only"""

    def __init__(self):
        super().__init__(MSG_KEEPALIVE)

    def encode(self) -> bytes:
        return self._build_header(b'')

    @classmethod
    def decode_payload(cls, payload: bytes) -> 'BGPKeepalive':
        if payload:
            raise bad_message_length(BGP_HEADER_SIZE + len(payload))
        return cls()


class BGPNotification(BGPMessage):
    """
    BGP NOTIFICATION Message (RFC 4271 Section 4.5)

    Format:
    - Error Code (1 byte)
    - Error Subcode (1 byte)
    - Data (variable): Error-specific data
    """

    def __init__(self, error_code: int, error_subcode: int, data: bytes = b''):
        super().__init__(MSG_NOTIFICATION)
        self.error_code = error_code
        self.error_subcode = error_subcode
        self.data = data

    @classmethod
    def from_error(cls, error) -> 'BGPNotification':
        """Build the NOTIFICATION that reports a BGPError"""
        return cls(error.error_code, error.error_subcode, error.data)

    def encode(self) -> bytes:
        payload = struct.pack('!BB', self.error_code, self.error_subcode) + self.data
        return self._build_header(payload)

    @classmethod
    def decode_payload(cls, payload: bytes) -> 'BGPNotification':
        if len(payload) < 2:
            raise bad_message_length(BGP_HEADER_SIZE + len(payload))
        return cls(payload[0], payload[1], payload[2:])


class BGPUpdate(BGPMessage):
    """
    BGP UPDATE Message (RFC 4271 Section 4.3)

    Format:
    - Withdrawn Routes Length (2 bytes)
    - Withdrawn Routes (variable): Prefixes to remove
    - Total Path Attribute Length (2 bytes)
    - Path Attributes (variable)
    - Network Layer Reachability Information (variable): Prefixes to add/update
    """

    def __init__(self, withdrawn_routes: List[str] = None,
                 path_attributes: Dict[int, PathAttribute] = None,
                 nlri: List[str] = None):
        super().__init__(MSG_UPDATE)
        self.withdrawn_routes = withdrawn_routes or []
        self.path_attributes = path_attributes or {}
        self.nlri = nlri or []

    @classmethod
    def build(cls, nlri: List[str], as_path: str, next_hop: str, origin: int,
              communities: Optional[str] = None,
              aggregator: Optional[Tuple[int, str]] = None,
              atomic_aggregate: bool = False,
              med: Optional[int] = None,
              local_pref: Optional[int] = None) -> 'BGPUpdate':
        """
        Build an advertisement from text-form attributes

        Args:
            nlri: Prefixes to advertise
            as_path: AS_PATH text ("" for an empty path)
            next_hop: IPv4 next hop
            origin: ORIGIN code
            communities: Space separated AS:VALUE list
            aggregator: (asn, router_id)
            atomic_aggregate: Attach ATOMIC_AGGREGATE
            med: MULTI_EXIT_DISC
            local_pref: LOCAL_PREF (iBGP only)
        """
        attrs: Dict[int, PathAttribute] = {
            ATTR_ORIGIN: OriginAttribute(origin),
            ATTR_AS_PATH: ASPathAttribute.from_string(as_path),
            ATTR_NEXT_HOP: NextHopAttribute(next_hop),
        }
        if med is not None:
            attrs[ATTR_MED] = MEDAttribute(med)
        if local_pref is not None:
            attrs[ATTR_LOCAL_PREF] = LocalPrefAttribute(local_pref)
        if atomic_aggregate:
            attrs[ATTR_ATOMIC_AGGREGATE] = AtomicAggregateAttribute()
        if aggregator is not None:
            attrs[ATTR_AGGREGATOR] = AggregatorAttribute(*aggregator)
        if communities:
            attrs[ATTR_COMMUNITIES] = CommunitiesAttribute.from_string(communities)
        return cls(path_attributes=attrs, nlri=list(nlri))

    def get_attribute(self, type_code: int) -> Optional[PathAttribute]:
        return self.path_attributes.get(type_code)

    def encode(self) -> bytes:
        withdrawn_data = self._encode_prefixes(self.withdrawn_routes)
        attr_data = encode_path_attributes(self.path_attributes)
        nlri_data = self._encode_prefixes(self.nlri)

        payload = struct.pack('!H', len(withdrawn_data)) + withdrawn_data
        payload += struct.pack('!H', len(attr_data)) + attr_data
        payload += nlri_data

        message = self._build_header(payload)
        if len(message) > BGP_MAX_MESSAGE_SIZE:
            raise bad_message_length(len(message))
        return message

    @classmethod
    def decode_payload(cls, payload: bytes) -> 'BGPUpdate':
        if len(payload) < 4:
            raise malformed_attribute_list()

        offset = 0
        withdrawn_len = struct.unpack('!H', payload[offset:offset + 2])[0]
        offset += 2

        if len(payload) < offset + withdrawn_len + 2:
            raise malformed_attribute_list()
        withdrawn_routes = cls._decode_prefixes(payload[offset:offset + withdrawn_len])
        offset += withdrawn_len

        attr_len = struct.unpack('!H', payload[offset:offset + 2])[0]
        offset += 2

        if len(payload) < offset + attr_len:
            raise malformed_attribute_list()
        path_attributes = decode_path_attributes(payload[offset:offset + attr_len])
        offset += attr_len

        nlri = cls._decode_prefixes(payload[offset:])

        return cls(withdrawn_routes, path_attributes, nlri)

    @staticmethod
    def _encode_prefixes(prefixes: List[str]) -> bytes:
        """
        Encode IPv4 prefixes for NLRI or withdrawn routes

        Format: <length> <prefix> where length is prefix bits.
        Only significant octets are included.
        """
        data = b''
        for prefix in prefixes:
            if '/' in prefix:
                ip, prefix_len_str = prefix.split('/')
                prefix_len = int(prefix_len_str)
            else:
                ip = prefix
                prefix_len = 32

            ip_bytes = socket.inet_aton(ip)
            num_octets = (prefix_len + 7) // 8
            data += struct.pack('!B', prefix_len) + ip_bytes[:num_octets]

        return data

    @staticmethod
    def _decode_prefixes(data: bytes) -> List[str]:
        """Decode IPv4 prefixes (e.g. ["203.0.113.0/24"])"""
        prefixes = []
        offset = 0

        while offset < len(data):
            prefix_len = data[offset]
            offset += 1

            if prefix_len > 32:
                raise invalid_network_field()

            num_octets = (prefix_len + 7) // 8
            if offset + num_octets > len(data):
                raise invalid_network_field()

            prefix_bytes = data[offset:offset + num_octets] + b'\x00' * (4 - num_octets)
            offset += num_octets

            prefixes.append(f"{socket.inet_ntoa(prefix_bytes)}/{prefix_len}")

        return prefixes


MESSAGE_CLASSES = {
    MSG_OPEN: BGPOpen,
    MSG_UPDATE: BGPUpdate,
    MSG_NOTIFICATION: BGPNotification,
    MSG_KEEPALIVE: BGPKeepalive,
}
