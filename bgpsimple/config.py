"""
Injector configuration

Validates command line values into an immutable PeerConfig. Every problem
found here is fatal and raised as StartupConfigError before any
connection attempt.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .bgp.constants import BGP_PORT, DEFAULT_HOLD_TIME
from .lib.validators import is_valid_ipv4, is_valid_as_number

logger = logging.getLogger(__name__)

# Between DEBUG and INFO: informational messages and UPDATE lines
VERBOSE = 15
logging.addLevelName(VERBOSE, "VERBOSE")

DEFAULT_LOCAL_PREF = 500
DEFAULT_TIMER_INTERVAL = 10


class StartupConfigError(ValueError):
    """Invalid startup configuration; the process must not start"""


class PeerType(Enum):
    IBGP = "iBGP"
    EBGP = "eBGP"


@dataclass(frozen=True)
class PeerConfig:
    """Static session parameters, built once at startup"""
    local_as: int
    local_ip: str
    peer_as: int
    peer_ip: str
    peer_type: PeerType

    # Rewrite NEXT_HOP to next_hop_self (always true for eBGP)
    adjust_next_hop: bool
    next_hop_self: str

    local_pref: int = DEFAULT_LOCAL_PREF
    prefix_limit: Optional[int] = None
    dry_run: bool = False
    infile: Optional[str] = None
    outfile: Optional[str] = None

    hold_time: int = DEFAULT_HOLD_TIME
    peer_port: int = BGP_PORT
    timer_interval: float = DEFAULT_TIMER_INTERVAL

    @property
    def is_ibgp(self) -> bool:
        return self.peer_type is PeerType.IBGP


def build_peer_config(myas: str, myip: str, peeras: str, peerip: str,
                      next_hop_self: Optional[str] = None,
                      local_pref: int = DEFAULT_LOCAL_PREF,
                      prefix_limit: Optional[int] = None,
                      dry_run: bool = False,
                      infile: Optional[str] = None,
                      outfile: Optional[str] = None,
                      hold_time: int = DEFAULT_HOLD_TIME,
                      peer_port: int = BGP_PORT,
                      timer_interval: float = DEFAULT_TIMER_INTERVAL) -> PeerConfig:
    """
    Validate startup values and derive the session parameters

    Args:
        myas: Our AS number
        myip: Our IP address, also used as router ID and session source
        peeras: Peer AS number
        peerip: Peer IP address
        next_hop_self: None when not requested, "" to use our own address,
            or an explicit IPv4 address (iBGP only)
        local_pref: LOCAL_PREF sent on iBGP sessions
        prefix_limit: Maximum number of prefixes to advertise; None or 0 for no limit
        dry_run: Only validate and preview the import file
        infile: Dump file to import
        outfile: File receiving all sent and received UPDATE lines
        hold_time: Proposed hold time
        peer_port: Peer TCP port
        timer_interval: Seconds between session timer ticks

    Returns:
        PeerConfig

    Raises:
        StartupConfigError: any value is invalid
    """
    if not is_valid_ipv4(peerip):
        raise StartupConfigError(f"Peer IP address is not valid: {peerip}")
    if not is_valid_as_number(peeras):
        raise StartupConfigError(f"Peer AS number is not valid: {peeras}")
    if not is_valid_ipv4(myip):
        raise StartupConfigError(f"Our IP address is not valid: {myip}")
    if not is_valid_as_number(myas):
        raise StartupConfigError(f"Our AS number is not valid: {myas}")
    if prefix_limit is not None and prefix_limit < 0:
        raise StartupConfigError(f"Maximum number of prefixes is not valid: {prefix_limit}")
    if not 0 <= local_pref <= 0xFFFFFFFF:
        raise StartupConfigError(f"Local preference is not valid: {local_pref}")
    if dry_run and not infile:
        raise StartupConfigError("Prefix file required for dry run")

    peer_type = PeerType.IBGP if int(myas) == int(peeras) else PeerType.EBGP

    if next_hop_self is None:
        adjust_next_hop = peer_type is PeerType.EBGP
        nh_address = myip
    elif peer_type is PeerType.EBGP:
        logger.log(VERBOSE, "Force to change next hop ignored due to eBGP session "
                            "(next hop self implied here).")
        adjust_next_hop = True
        nh_address = myip
    elif next_hop_self == "":
        adjust_next_hop = True
        nh_address = myip
    else:
        if not is_valid_ipv4(next_hop_self):
            raise StartupConfigError(f"Next hop self IP address is not valid: {next_hop_self}")
        adjust_next_hop = True
        nh_address = next_hop_self

    if infile:
        check_readable(infile)
    if outfile:
        truncate_output(outfile)

    return PeerConfig(
        local_as=int(myas),
        local_ip=myip,
        peer_as=int(peeras),
        peer_ip=peerip,
        peer_type=peer_type,
        adjust_next_hop=adjust_next_hop,
        next_hop_self=nh_address,
        local_pref=local_pref,
        prefix_limit=prefix_limit or None,
        dry_run=dry_run,
        infile=infile,
        outfile=outfile,
        hold_time=hold_time,
        peer_port=peer_port,
        timer_interval=timer_interval,
    )


def check_readable(path: str) -> None:
    try:
        with open(path):
            pass
    except OSError as e:
        raise StartupConfigError(f"Cannot open file {path}: {e.strerror}") from e


def truncate_output(path: str) -> None:
    """Start every run with an empty UPDATE output file"""
    try:
        with open(path, 'w'):
            pass
    except OSError as e:
        raise StartupConfigError(f"Cannot open file {path}: {e.strerror}") from e


def log_summary(config: PeerConfig) -> None:
    """Log the effective configuration"""
    logger.info("-" * 40 + " CONFIG SUMMARY " + "-" * 40)
    logger.info(f"Configured for an {config.peer_type.value} session between me "
                f"(AS{config.local_as}, {config.local_ip}) and peer "
                f"(AS{config.peer_as}, {config.peer_ip}).")
    if config.infile:
        logger.info(f"Will use prefixes from file {config.infile}.")
    if config.outfile:
        logger.info(f"Will write sent and received UPDATEs to file {config.outfile}.")
    if config.prefix_limit:
        logger.info(f"Maximum number of prefixes to be advertised: {config.prefix_limit}.")
    if config.adjust_next_hop and config.is_ibgp:
        logger.info(f"Will spoof next hop address to {config.next_hop_self}.")
    if not config.is_ibgp:
        logger.info(f"Will set next hop address to {config.next_hop_self} because of eBGP peering.")
    logger.info("-" * 96)
