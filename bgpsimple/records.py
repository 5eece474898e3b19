"""
Route dump records

One line of a bgpdump (`bgpdump -m`) table dump, e.g.:

    TABLE_DUMP2|1367366400|B|96.4.0.55|11686|1.0.0.0/24|11686 4436 15169|IGP|96.4.0.55|0|0|11686:12 11686:80|NAG||

Fields used, by pipe-delimited position:
    3 neighbor, 5 prefix, 6 AS path, 7 origin, 8 next hop, 9 local pref,
    10 MED, 11 communities, 12 atomic aggregate (AG/NAG), 13 aggregator
"""

from dataclasses import dataclass
from typing import Optional

MIN_FIELDS = 14

# Marker in the atomic aggregate column for aggregated routes
ATOMIC_AGGREGATE_MARKER = "AG"


@dataclass(frozen=True)
class RouteRecord:
    """Raw fields of one dump line, kept verbatim"""
    neighbor: str
    prefix: str
    as_path: str
    origin: str
    next_hop: str
    local_pref: str
    med: str
    communities: str
    atomic_aggregate: str
    aggregator: str

    @classmethod
    def parse(cls, line: str) -> Optional['RouteRecord']:
        """
        Split a dump line into its fields

        Args:
            line: Dump line, trailing newline allowed

        Returns:
            RouteRecord, or None when the line has too few fields
        """
        fields = line.rstrip('\r\n').split('|')
        if len(fields) < MIN_FIELDS:
            return None

        return cls(
            neighbor=fields[3],
            prefix=fields[5],
            as_path=fields[6],
            origin=fields[7],
            next_hop=fields[8],
            local_pref=fields[9],
            med=fields[10],
            communities=fields[11],
            atomic_aggregate=fields[12],
            aggregator=fields[13],
        )
