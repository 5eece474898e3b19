"""
BGP Communities Helper Utilities (RFC 1997)

Converts between the "AS:VALUE" text form used in dump files and log
lines and the 32-bit values carried in the COMMUNITIES attribute.
"""

import re
from typing import List, Optional

from .constants import *


def parse_community(s: str) -> Optional[int]:
    """
    Parse community string to 32-bit integer

    Args:
        s: Community string (e.g., "65001:100" or well-known name)

    Returns:
        32-bit community value or None if invalid

    Examples:
        >>> hex(parse_community("65001:100"))
        '0xfde90064'
    """
    for value, name in WELL_KNOWN_COMMUNITIES.items():
        if s == name:
            return value

    match = re.match(r'^(\d+):(\d+)$', s)
    if not match:
        return None

    asn = int(match.group(1))
    value = int(match.group(2))

    if asn > 65535 or value > 65535:
        return None

    return (asn << 16) | value


def format_community(val: int) -> str:
    """
    Format 32-bit community value to string

    Examples:
        >>> format_community(0xFDE90064)
        '65001:100'
    """
    if val in WELL_KNOWN_COMMUNITIES:
        return WELL_KNOWN_COMMUNITIES[val]

    asn = (val >> 16) & 0xFFFF
    value = val & 0xFFFF
    return f"{asn}:{value}"


def parse_community_list(s: str) -> List[int]:
    """
    Parse a space-separated community list, skipping unparsable entries

    Examples:
        >>> [hex(c) for c in parse_community_list("65001:100 65001:200")]
        ['0xfde90064', '0xfde900c8']
    """
    communities = []
    for part in s.split():
        comm = parse_community(part)
        if comm is not None:
            communities.append(comm)
    return communities


def format_community_list(communities: List[int]) -> str:
    """Format communities as a space-separated string"""
    return ' '.join(format_community(c) for c in communities)
