"""
Route Import Pipeline

Turns dump records into UPDATE messages. Each line goes through a fixed
sequence of checks; a record failing any of them is logged and skipped,
and the run carries on with the next line:

    NEIG filter -> prefix syntax -> NLRI filter -> AS_PATH syntax ->
    COMMUNITY syntax -> NEXT_HOP syntax -> remaining filters ->
    MED / AGGREGATOR conversion -> UPDATE encoding

Accepted records are logged and, unless in dry-run mode, sent to the peer
until the prefix limit is reached.
"""

import logging
import struct
from dataclasses import dataclass
from typing import Optional, Tuple

from .bgp.constants import *
from .bgp.messages import BGPUpdate
from .config import PeerConfig, VERBOSE
from .filters import FilterKey, FilterSet
from .lib.validators import (
    is_valid_ipv4, is_valid_as_number, is_valid_as_path,
    is_valid_community_list, is_valid_prefix,
)
from .records import RouteRecord, ATOMIC_AGGREGATE_MARKER
from .update_log import UPDATES_LOGGER

ORIGIN_CODES = {
    "IGP": ORIGIN_IGP,
    "EGP": ORIGIN_EGP,
}

# Filters checked once the record's syntax has been validated
LATE_FILTERS = (
    FilterKey.ASPT, FilterKey.ORIG, FilterKey.NXHP, FilterKey.LOCP, FilterKey.MED,
    FilterKey.COMM, FilterKey.ATOM, FilterKey.AGG,
)


class RecordRejected(Exception):
    """A record failed a check and is skipped"""

    def __init__(self, prefix: str, reason: str):
        super().__init__(f"Prefix [ {prefix} ] failed because {reason}.")


@dataclass
class ResolvedRoute:
    """Attribute values for one advertisement, after next hop rewriting"""
    prefix: str
    as_path: str
    origin_token: str
    origin: int
    next_hop: str
    communities: str
    atomic_aggregate: bool
    med: Optional[int] = None
    aggregator: Optional[Tuple[int, str]] = None
    local_pref: Optional[int] = None

    def to_update(self) -> BGPUpdate:
        return BGPUpdate.build(
            nlri=[self.prefix],
            as_path=self.as_path,
            next_hop=self.next_hop,
            origin=self.origin,
            communities=self.communities or None,
            aggregator=self.aggregator,
            atomic_aggregate=self.atomic_aggregate,
            med=self.med,
            local_pref=self.local_pref,
        )

    def describe(self) -> str:
        parts = [f"PREFIX [{self.prefix}]", f"AS_PATH [{self.as_path}]"]
        if self.aggregator:
            parts.append(f"AGGREGATOR [{self.aggregator[0]} {self.aggregator[1]}]")
        parts.append(f"ATOMIC_AGGREGATE [{int(self.atomic_aggregate)}]")
        if self.local_pref is not None:
            parts.append(f"LOCAL_PREF [{self.local_pref}]")
        if self.med:
            parts.append(f"MED [{self.med}]")
        parts.append(f"COMMUNITY [{self.communities}]")
        parts.append(f"ORIGIN [{self.origin_token}]")
        parts.append(f"NEXT_HOP [{self.next_hop}]")
        return " ".join(parts)


def map_origin(token: str) -> int:
    """IGP -> 0, EGP -> 1, anything else (INCOMPLETE included) -> 2"""
    return ORIGIN_CODES.get(token, ORIGIN_INCOMPLETE)


def parse_med(value: str) -> Optional[int]:
    """MED from the dump field; None when empty or zero"""
    if value in ("", "0"):
        return None
    med = int(value)
    if not 0 <= med <= 0xFFFFFFFF:
        raise ValueError(f"MED out of range: {value}")
    return med or None


def parse_aggregator(value: str) -> Optional[Tuple[int, str]]:
    """AGGREGATOR from the dump field ("ASN IPv4"); None when empty"""
    if value == "":
        return None
    fields = value.split(' ')
    if len(fields) != 2 or not is_valid_as_number(fields[0]) or not is_valid_ipv4(fields[1]):
        raise ValueError(f"Bad AGGREGATOR: {value}")
    return (int(fields[0]), fields[1])


class RouteImportPipeline:
    """
    Route Import Pipeline

    Holds no state between runs; the advertised counter lives inside run().
    """

    def __init__(self, config: PeerConfig, filters: Optional[FilterSet] = None):
        """
        Args:
            config: Session parameters
            filters: Per-field filters; no filters when None
        """
        self.config = config
        self.filters = filters or FilterSet()
        self.logger = logging.getLogger("RouteImportPipeline")
        self.updates = logging.getLogger(UPDATES_LOGGER)

    def effective_next_hop(self, record_next_hop: str) -> str:
        """NEXT_HOP to advertise: ours for eBGP or when rewriting was asked for, else the record's"""
        if not self.config.is_ibgp or self.config.adjust_next_hop:
            return self.config.next_hop_self
        return record_next_hop

    def resolve(self, record: RouteRecord) -> ResolvedRoute:
        """
        Check a record and map it to advertisement attributes

        Args:
            record: Parsed dump line

        Returns:
            ResolvedRoute

        Raises:
            RecordRejected: The record fails a syntax check, a filter, or encoding
        """
        prefix = record.prefix

        if not self.filters.record_matches(FilterKey.NEIG, record):
            raise RecordRejected(prefix, "NEIG filter did not match")
        if not is_valid_prefix(prefix):
            raise RecordRejected(prefix, "of wrong prefix format")
        if not self.filters.record_matches(FilterKey.NLRI, record):
            raise RecordRejected(prefix, "NLRI filter did not match")
        if not is_valid_as_path(record.as_path):
            raise RecordRejected(prefix, "of wrong AS_PATH format")
        if not is_valid_community_list(record.communities):
            raise RecordRejected(prefix, "of wrong COMMUNITY format")
        if not is_valid_ipv4(record.next_hop):
            raise RecordRejected(prefix, "of wrong NEXT_HOP format")

        for key in LATE_FILTERS:
            if not self.filters.record_matches(key, record):
                raise RecordRejected(prefix, f"{key.name} filter did not match")

        try:
            med = parse_med(record.med)
        except ValueError:
            raise RecordRejected(prefix, "of wrong MED format") from None
        try:
            aggregator = parse_aggregator(record.aggregator)
        except ValueError:
            raise RecordRejected(prefix, "of wrong AGGREGATOR format") from None

        route = ResolvedRoute(
            prefix=prefix,
            as_path=record.as_path,
            origin_token=record.origin,
            origin=map_origin(record.origin),
            next_hop=self.effective_next_hop(record.next_hop),
            communities=record.communities,
            atomic_aggregate=record.atomic_aggregate == ATOMIC_AGGREGATE_MARKER,
            med=med,
            aggregator=aggregator,
            local_pref=self.config.local_pref if self.config.is_ibgp else None,
        )
        try:
            route.to_update().encode()
        except (OSError, ValueError, struct.error):
            raise RecordRejected(prefix, "it cannot be encoded as an UPDATE") from None
        return route

    def run(self, peer=None) -> int:
        """
        Import the dump file once

        Args:
            peer: Established BGPPeer to send to; unused in dry-run mode

        Returns:
            Number of records advertised (or previewed in dry-run mode)
        """
        dry_run = self.config.dry_run
        if not dry_run and peer is None:
            raise ValueError("A peer is required unless running dry")

        limit = self.config.prefix_limit
        cur = 1

        with open(self.config.infile) as infile:
            for lineno, line in enumerate(infile, 1):
                record = RouteRecord.parse(line)
                if record is None:
                    self.logger.debug(f"Skipping malformed line {lineno}")
                    continue

                try:
                    route = self.resolve(record)
                except RecordRejected as e:
                    self.logger.error(str(e))
                    continue

                if dry_run:
                    self.updates.log(VERBOSE, f"Generated UPDATE (not sent): {route.describe()}")
                else:
                    self.updates.log(VERBOSE, f"Send UPDATE: {route.describe()}")
                    peer.update(route.to_update())

                cur += 1
                if limit and cur > limit:
                    self.logger.log(VERBOSE, f"Prefix limit of {limit} reached.")
                    break

        return cur - 1
