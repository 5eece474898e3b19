"""
Record filters

Per-field regular expressions given on the command line as KEY=REGEX.
A record passes a filter when the pattern is found anywhere in the field;
fields without a bound pattern are unconstrained.
"""

import re
from enum import Enum
from typing import Dict, Iterable, Pattern

from .config import StartupConfigError
from .records import RouteRecord


class FilterKey(Enum):
    """Filterable dump fields, mapped to the RouteRecord attribute they read"""
    NEIG = "neighbor"
    NLRI = "prefix"
    ASPT = "as_path"
    ORIG = "origin"
    NXHP = "next_hop"
    LOCP = "local_pref"
    MED = "med"
    COMM = "communities"
    ATOM = "atomic_aggregate"
    AGG = "aggregator"

    @classmethod
    def parse(cls, name: str) -> 'FilterKey':
        try:
            return cls[name.strip().upper()]
        except KeyError:
            valid = ", ".join(key.name for key in cls)
            raise StartupConfigError(f"Unknown filter key {name!r} (valid keys: {valid})") from None


class FilterSet:
    """Compiled filters, at most one pattern per field"""

    def __init__(self, patterns: Dict[FilterKey, Pattern] = None):
        self.patterns = dict(patterns or {})

    @classmethod
    def from_entries(cls, entries: Iterable[str]) -> 'FilterSet':
        """
        Build filters from KEY=REGEX entries

        Args:
            entries: e.g. ["NLRI=^10\\.", "aspt=_3356_"]

        Returns:
            FilterSet

        Raises:
            StartupConfigError: malformed entry, unknown key or invalid pattern
        """
        patterns = {}
        for entry in entries:
            key_text, sep, pattern = entry.partition('=')
            if not sep:
                raise StartupConfigError(f"Filter must be given as KEY=REGEX: {entry!r}")
            key = FilterKey.parse(key_text)
            try:
                patterns[key] = re.compile(pattern)
            except re.error as e:
                raise StartupConfigError(f"Invalid regular expression for filter {key.name}: "
                                         f"{pattern!r} ({e})") from e
        return cls(patterns)

    def __bool__(self) -> bool:
        return bool(self.patterns)

    def matches(self, key: FilterKey, value: str) -> bool:
        pattern = self.patterns.get(key)
        return pattern is None or pattern.search(value) is not None

    def record_matches(self, key: FilterKey, record: RouteRecord) -> bool:
        return self.matches(key, getattr(record, key.value))

    def describe(self) -> str:
        return ", ".join(f"{key.name}={pattern.pattern}" for key, pattern in self.patterns.items())
