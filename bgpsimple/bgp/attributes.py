"""
BGP Path Attributes (RFC 4271 Section 5)

Attributes needed to inject routes and to log what the peer sends us:
- Well-known mandatory: ORIGIN, AS_PATH, NEXT_HOP
- Well-known discretionary: LOCAL_PREF, ATOMIC_AGGREGATE
- Optional: MED, AGGREGATOR, COMMUNITIES

Attributes of any other type code are skipped on decode.
"""

import re
import socket
import struct
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from .constants import *
from .communities import format_community_list, parse_community_list
from .errors import UpdateMessageError, malformed_attribute_list


class PathAttribute(ABC):
    """
    Base class for BGP path attributes (RFC 4271 Section 5)

    Attribute format:
    - Flags (1 byte): Optional, Transitive, Partial, Extended
    - Type Code (1 byte)
    - Length (1 or 2 bytes): Extended length if flag bit set
    - Value (variable)
    """

    type_code = 0
    default_flags = ATTR_FLAG_TRANSITIVE

    def __init__(self):
        self.flags = self.default_flags

    @abstractmethod
    def encode_value(self) -> bytes:
        """Encode attribute-specific value"""

    @classmethod
    @abstractmethod
    def decode_value(cls, data: bytes) -> 'PathAttribute':
        """Build the attribute from its value bytes, raising UpdateMessageError if malformed"""

    def encode(self) -> bytes:
        """
        Encode attribute to wire format

        Returns:
            Encoded attribute bytes
        """
        value = self.encode_value()
        length = len(value)

        if length > 255:
            flags = self.flags | ATTR_FLAG_EXTENDED
            return struct.pack('!BBH', flags, self.type_code, length) + value
        flags = self.flags & ~ATTR_FLAG_EXTENDED
        return struct.pack('!BBB', flags, self.type_code, length) + value

    @staticmethod
    def decode(data: bytes) -> Tuple[Optional['PathAttribute'], int]:
        """
        Decode one path attribute

        Args:
            data: Attribute bytes

        Returns:
            (PathAttribute or None for unsupported types, bytes_consumed)

        Raises:
            UpdateMessageError: truncated or malformed attribute
        """
        if len(data) < 3:
            raise malformed_attribute_list()

        flags = data[0]
        type_code = data[1]

        if flags & ATTR_FLAG_EXTENDED:
            if len(data) < 4:
                raise malformed_attribute_list()
            length = struct.unpack('!H', data[2:4])[0]
            value_offset = 4
        else:
            length = data[2]
            value_offset = 3

        if len(data) < value_offset + length:
            raise malformed_attribute_list()

        value = data[value_offset:value_offset + length]
        consumed = value_offset + length

        attr_class = ATTRIBUTE_CLASSES.get(type_code)
        if attr_class is None:
            return (None, consumed)

        attr = attr_class.decode_value(value)
        attr.flags = flags
        return (attr, consumed)


def _length_error(type_code: int) -> UpdateMessageError:
    return UpdateMessageError(5, bytes([type_code]), f"Attribute Length Error: {type_code}")


class OriginAttribute(PathAttribute):
    """ORIGIN (Type 1): IGP (0), EGP (1), INCOMPLETE (2)"""

    type_code = ATTR_ORIGIN

    def __init__(self, origin: int):
        super().__init__()
        self.origin = origin

    def encode_value(self) -> bytes:
        return struct.pack('!B', self.origin)

    @classmethod
    def decode_value(cls, data: bytes) -> 'OriginAttribute':
        if len(data) != 1:
            raise _length_error(ATTR_ORIGIN)
        if data[0] not in ORIGIN_NAMES:
            raise UpdateMessageError(6, data, "Invalid ORIGIN Attribute")
        return cls(data[0])

    def __str__(self) -> str:
        return ORIGIN_NAMES[self.origin]


class ASPathAttribute(PathAttribute):
    """
    AS_PATH (Type 2)

    Holds a list of (segment_type, [ASNs]). The text form used by dump
    files is a space separated AS_SEQUENCE with AS_SETs in braces, e.g.
    "3356 1299 {64512,64513}".
    """

    type_code = ATTR_AS_PATH

    def __init__(self, segments: List[Tuple[int, List[int]]] = None):
        super().__init__()
        self.segments = segments or []

    @classmethod
    def from_string(cls, as_path: str) -> 'ASPathAttribute':
        """
        Build an AS_PATH from its text form; an empty string gives an empty path

        Runs longer than AS_SEGMENT_MAX_LENGTH are split over consecutive
        segments of the same type.
        """
        segments = []
        current = None

        for token in re.findall(r'\{|\}|\d+', as_path):
            if token == '{':
                current = (AS_SET, [])
                segments.append(current)
            elif token == '}':
                current = None
            else:
                if current is None:
                    current = (AS_SEQUENCE, [])
                    segments.append(current)
                current[1].append(int(token))

        return cls([(seg_type, as_list[i:i + AS_SEGMENT_MAX_LENGTH])
                    for seg_type, as_list in segments
                    for i in range(0, len(as_list), AS_SEGMENT_MAX_LENGTH)])

    def encode_value(self) -> bytes:
        data = b''
        for seg_type, as_list in self.segments:
            data += struct.pack('!BB', seg_type, len(as_list))
            for asn in as_list:
                data += struct.pack('!H', asn)
        return data

    @classmethod
    def decode_value(cls, data: bytes) -> 'ASPathAttribute':
        segments = []
        offset = 0

        while offset < len(data):
            if offset + 2 > len(data):
                raise UpdateMessageError(11, message="Malformed AS_PATH")

            seg_type = data[offset]
            seg_len = data[offset + 1]
            offset += 2

            if seg_type not in (AS_SET, AS_SEQUENCE) or offset + seg_len * 2 > len(data):
                raise UpdateMessageError(11, message="Malformed AS_PATH")

            as_list = list(struct.unpack(f'!{seg_len}H', data[offset:offset + seg_len * 2]))
            offset += seg_len * 2
            segments.append((seg_type, as_list))

        return cls(segments)

    def __str__(self) -> str:
        parts = []
        for seg_type, as_list in self.segments:
            if seg_type == AS_SET:
                parts.append("{" + ",".join(str(a) for a in as_list) + "}")
            else:
                parts.append(" ".join(str(a) for a in as_list))
        return " ".join(parts)


class NextHopAttribute(PathAttribute):
    """NEXT_HOP (Type 3): IPv4 address of next hop"""

    type_code = ATTR_NEXT_HOP

    def __init__(self, next_hop: str):
        super().__init__()
        self.next_hop = next_hop

    def encode_value(self) -> bytes:
        return socket.inet_aton(self.next_hop)

    @classmethod
    def decode_value(cls, data: bytes) -> 'NextHopAttribute':
        if len(data) != 4:
            raise _length_error(ATTR_NEXT_HOP)
        return cls(socket.inet_ntoa(data))

    def __str__(self) -> str:
        return self.next_hop


class MEDAttribute(PathAttribute):
    """MULTI_EXIT_DISC (Type 4): optional non-transitive 32-bit metric"""

    type_code = ATTR_MED
    default_flags = ATTR_FLAG_OPTIONAL

    def __init__(self, med: int):
        super().__init__()
        self.med = med

    def encode_value(self) -> bytes:
        return struct.pack('!I', self.med)

    @classmethod
    def decode_value(cls, data: bytes) -> 'MEDAttribute':
        if len(data) != 4:
            raise _length_error(ATTR_MED)
        return cls(struct.unpack('!I', data)[0])

    def __str__(self) -> str:
        return str(self.med)


class LocalPrefAttribute(PathAttribute):
    """LOCAL_PREF (Type 5): iBGP only, higher is better"""

    type_code = ATTR_LOCAL_PREF

    def __init__(self, local_pref: int):
        super().__init__()
        self.local_pref = local_pref

    def encode_value(self) -> bytes:
        return struct.pack('!I', self.local_pref)

    @classmethod
    def decode_value(cls, data: bytes) -> 'LocalPrefAttribute':
        if len(data) != 4:
            raise _length_error(ATTR_LOCAL_PREF)
        return cls(struct.unpack('!I', data)[0])

    def __str__(self) -> str:
        return str(self.local_pref)


class AtomicAggregateAttribute(PathAttribute):
    """ATOMIC_AGGREGATE (Type 6): zero-length flag"""

    type_code = ATTR_ATOMIC_AGGREGATE

    def encode_value(self) -> bytes:
        return b''

    @classmethod
    def decode_value(cls, data: bytes) -> 'AtomicAggregateAttribute':
        if data:
            raise _length_error(ATTR_ATOMIC_AGGREGATE)
        return cls()

    def __str__(self) -> str:
        return "1"


class AggregatorAttribute(PathAttribute):
    """AGGREGATOR (Type 7): AS number and router ID of the aggregating speaker"""

    type_code = ATTR_AGGREGATOR
    default_flags = ATTR_FLAG_OPTIONAL | ATTR_FLAG_TRANSITIVE

    def __init__(self, asn: int, router_id: str):
        super().__init__()
        self.asn = asn
        self.router_id = router_id

    def encode_value(self) -> bytes:
        return struct.pack('!H', self.asn) + socket.inet_aton(self.router_id)

    @classmethod
    def decode_value(cls, data: bytes) -> 'AggregatorAttribute':
        if len(data) != 6:
            raise _length_error(ATTR_AGGREGATOR)
        asn = struct.unpack('!H', data[0:2])[0]
        return cls(asn, socket.inet_ntoa(data[2:6]))

    def __str__(self) -> str:
        return f"{self.asn} {self.router_id}"


class CommunitiesAttribute(PathAttribute):
    """COMMUNITIES (Type 8, RFC 1997): set of 32-bit AS:VALUE communities"""

    type_code = ATTR_COMMUNITIES
    default_flags = ATTR_FLAG_OPTIONAL | ATTR_FLAG_TRANSITIVE

    def __init__(self, communities: List[int] = None):
        super().__init__()
        self.communities = communities or []

    @classmethod
    def from_string(cls, communities: str) -> 'CommunitiesAttribute':
        return cls(parse_community_list(communities))

    def encode_value(self) -> bytes:
        return b''.join(struct.pack('!I', comm) for comm in self.communities)

    @classmethod
    def decode_value(cls, data: bytes) -> 'CommunitiesAttribute':
        if len(data) % 4 != 0:
            raise _length_error(ATTR_COMMUNITIES)
        count = len(data) // 4
        return cls(list(struct.unpack(f'!{count}I', data)))

    def __str__(self) -> str:
        return format_community_list(self.communities)


ATTRIBUTE_CLASSES = {
    cls.type_code: cls
    for cls in (OriginAttribute, ASPathAttribute, NextHopAttribute, MEDAttribute,
                LocalPrefAttribute, AtomicAggregateAttribute, AggregatorAttribute,
                CommunitiesAttribute)
}


def encode_path_attributes(attributes: Dict[int, PathAttribute]) -> bytes:
    """Encode attributes in ascending type code order"""
    return b''.join(attributes[code].encode() for code in sorted(attributes))


def decode_path_attributes(data: bytes) -> Dict[int, PathAttribute]:
    """
    Decode path attributes from wire format

    Args:
        data: Attributes bytes

    Returns:
        Dict mapping type_code to PathAttribute

    Raises:
        UpdateMessageError: a malformed attribute was found
    """
    attributes = {}
    offset = 0

    while offset < len(data):
        attr, consumed = PathAttribute.decode(data[offset:])
        if attr is not None:
            attributes[attr.type_code] = attr
        offset += consumed

    return attributes
