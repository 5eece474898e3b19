"""
Update Receipt Logger

Formats received UPDATEs, NOTIFICATIONs and locally detected errors into
stable one-line records. Every UPDATE line, sent or received, goes to the
`bgpsimple.updates` logger; when an output file is configured those lines
are also appended to it.
"""

import logging
import sys
from typing import List, Optional

from .bgp.constants import *
from .bgp.errors import describe, format_error_data
from .bgp.messages import BGPNotification, BGPUpdate
from .config import VERBOSE

UPDATES_LOGGER = "bgpsimple.updates"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class UpdateFileHandler(logging.Handler):
    """Append each record to a file, opening and closing it per record"""

    def __init__(self, path: str, level: int = logging.NOTSET):
        super().__init__(level)
        self.path = path
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
            with open(self.path, 'a') as f:
                f.write(line + "\n")
        except Exception:
            self.handleError(record)


class UpdateLogger:
    """
    Logs what the peer sends us

    Args:
        logger: Destination for UPDATE lines, `bgpsimple.updates` by default
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.updates = logger or logging.getLogger(UPDATES_LOGGER)
        self.logger = logging.getLogger("UpdateLogger")

    def log_update(self, peer_id: str, peer_as: int, update: BGPUpdate) -> None:
        """Log a received UPDATE: one line for its NLRI, one for its withdrawals"""
        if update.withdrawn_routes:
            self.updates.log(VERBOSE, f"Withdrawal received from PEER [{peer_id}], ASN [{peer_as}]: "
                                      f"PREFIXES [{' '.join(update.withdrawn_routes)}]")
        if update.nlri or not update.withdrawn_routes:
            self.updates.log(VERBOSE, format_received_update(peer_id, peer_as, update))

    def log_notification(self, peer_id: str, peer_as: int, notification: BGPNotification) -> None:
        self.logger.warning(format_fault("NOTIFICATION received from", peer_id, peer_as, notification))

    def log_error(self, peer_id: str, peer_as: int, notification: BGPNotification) -> None:
        self.logger.error(format_fault("ERROR occurred with", peer_id, peer_as, notification))


def format_received_update(peer_id: str, peer_as: int, update: BGPUpdate) -> str:
    """
    Render a received UPDATE

    Example:
        Update received from PEER [192.0.2.2], ASN [65002]: PREFIXES [10.0.0.0/24]
        AS_PATH [65002 3356] COMMUNITY [65002:100] ORIGIN [IGP] AGGREGATOR [] NEXT_HOP [192.0.2.2]
    """
    parts: List[str] = [
        f"Update received from PEER [{peer_id}], ASN [{peer_as}]:",
        f"PREFIXES [{' '.join(update.nlri)}]",
        f"AS_PATH [{_attr_text(update, ATTR_AS_PATH)}]",
    ]

    local_pref = update.get_attribute(ATTR_LOCAL_PREF)
    if local_pref is not None and local_pref.local_pref:
        parts.append(f"LOCAL_PREF [{local_pref}]")
    med = update.get_attribute(ATTR_MED)
    if med is not None and med.med:
        parts.append(f"MED [{med}]")

    parts.append(f"COMMUNITY [{_attr_text(update, ATTR_COMMUNITIES)}]")

    origin = update.get_attribute(ATTR_ORIGIN)
    if origin is not None:
        parts.append(f"ORIGIN [{origin}]")

    parts.append(f"AGGREGATOR [{_attr_text(update, ATTR_AGGREGATOR)}]")
    parts.append(f"NEXT_HOP [{_attr_text(update, ATTR_NEXT_HOP)}]")
    return " ".join(parts)


def format_fault(prefix: str, peer_id: str, peer_as: int, notification: BGPNotification) -> str:
    """Render a NOTIFICATION or local error with its decoded category and subcode"""
    category, text = describe(notification.error_code, notification.error_subcode)
    line = f"{prefix} PEER [{peer_id}], ASN [{peer_as}]: TYPE [{category}]"
    if notification.error_subcode:
        line += f" SUBCODE [{text}]"
    data = format_error_data(notification.data)
    if data:
        line += f" DATA [{data}]"
    return line


def _attr_text(update: BGPUpdate, type_code: int) -> str:
    attr = update.get_attribute(type_code)
    return str(attr) if attr is not None else ""


def verbosity_level(verbose: int) -> int:
    """Map -v count to a log level"""
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return VERBOSE
    return logging.INFO


def setup_logging(verbose: int = 0, log_level: Optional[str] = None,
                  outfile: Optional[str] = None) -> int:
    """
    Configure console logging and the UPDATE output file

    Args:
        verbose: Number of -v flags
        log_level: Explicit level name, overrides verbose
        outfile: File receiving every UPDATE line regardless of console level

    Returns:
        Effective console level
    """
    level = logging.getLevelName(log_level.upper()) if log_level else verbosity_level(verbose)

    # Handler level set too: the updates logger may run below the console level
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[console]
    )

    if outfile:
        updates = logging.getLogger(UPDATES_LOGGER)
        updates.setLevel(min(level, VERBOSE))
        updates.addHandler(UpdateFileHandler(outfile))

    return level
