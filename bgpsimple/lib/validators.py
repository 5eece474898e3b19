"""
Dump Field Validation
Syntax checks for addresses, AS numbers, AS paths, communities and prefixes

Each check is a plain predicate on the raw text; nothing is normalised.
Address octets may not carry leading zeros ("010" would be read as octal).
"""

import re

_OCTET = r'(?:25[0-5]|2[0-4]\d|1\d\d|[1-9]?\d)'
_ASN = r'(?:[1-9]\d{0,3}|[1-5]\d{4}|6[0-4]\d{3}|65[0-4]\d{2}|655[0-2]\d|6553[0-5])'
_IPV4 = rf'{_OCTET}\.{_OCTET}\.{_OCTET}\.{_OCTET}'

_IPV4_RE = re.compile(_IPV4)
_ASN_RE = re.compile(_ASN)
# First ASN, then ASNs joined by whitespace, " {" (set start) or "," (set member),
# each optionally closing a set
_AS_PATH_RE = re.compile(rf'{_ASN}(?:(?:\s| \{{|,){_ASN}\}}?)*')
_COMMUNITY_LIST_RE = re.compile(rf'{_ASN}:{_ASN}(?: {_ASN}:{_ASN})*')
_PREFIX_RE = re.compile(rf'{_IPV4}/(?:\d|[12]\d|3[0-2])')


def is_valid_ipv4(value: str) -> bool:
    """Dotted-quad IPv4 address"""
    return _IPV4_RE.fullmatch(value) is not None


def is_valid_as_number(value: str) -> bool:
    """2-byte AS number, 1-65535"""
    return _ASN_RE.fullmatch(value) is not None


def is_valid_as_path(value: str) -> bool:
    """
    AS path in dump notation, or empty

    Examples:
        "3356 1299 15169", "3356 {64512,64513}", ""
    """
    return value == "" or _AS_PATH_RE.fullmatch(value) is not None


def is_valid_community_list(value: str) -> bool:
    """Space separated AS:VALUE pairs (both halves 1-65535), or empty"""
    return value == "" or _COMMUNITY_LIST_RE.fullmatch(value) is not None


def is_valid_prefix(value: str) -> bool:
    """IPv4 prefix a.b.c.d/len with len 0-32"""
    return _PREFIX_RE.fullmatch(value) is not None
