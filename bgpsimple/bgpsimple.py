#!/usr/bin/env python3
"""
bgp-simple - BGP route injector
Holds one BGP session and advertises the routes of a bgpdump table dump

Usage:
    bgp-simple --myas 65001 --myip 192.0.2.1 \\
        --peeras 65001 --peerip 192.0.2.2 \\
        -f table.dump -m 1000 -v
"""

import argparse
import logging
import sys

from .bgp import BGPPeer, BGPPeerConfig, BGPProcess
from .config import StartupConfigError, build_peer_config, log_summary, DEFAULT_LOCAL_PREF
from .bgp.constants import BGP_PORT, DEFAULT_HOLD_TIME
from .controller import SessionController
from .filters import FilterSet
from .pipeline import RouteImportPipeline
from .update_log import UpdateLogger, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bgp-simple",
        description="bgp-simple - BGP route injector",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Example:
  bgp-simple --myas 65001 --myip 192.0.2.1 --peeras 65002 --peerip 192.0.2.2 \\
      -f table.dump -o updates.txt --filter NLRI=^10\\. -v

Filter keys:
  NEIG NLRI ASPT ORIG NXHP LOCP MED COMM ATOM AGG

Note:
  - Next hop self is always applied on eBGP sessions
  - --dry only validates and prints the UPDATEs, no session is opened
        """
    )

    parser.add_argument("--myas", required=True,
                        help="Our AS number")
    parser.add_argument("--myip", required=True,
                        help="Our IP address, used as router ID and session source")
    parser.add_argument("--peeras", required=True,
                        help="Peer AS number")
    parser.add_argument("--peerip", required=True,
                        help="Peer IP address")
    parser.add_argument("-v", dest="verbose", action="count", default=0,
                        help="Be verbose; twice for debug output")
    parser.add_argument("-f", "--file", dest="infile", default=None,
                        help="Prefix file (bgpdump -m format) to advertise")
    parser.add_argument("-o", "--output", dest="outfile", default=None,
                        help="Write all sent and received UPDATEs to this file")
    parser.add_argument("-m", "--max-prefixes", dest="prefix_limit", type=int, default=None,
                        help="Maximum number of prefixes to advertise")
    parser.add_argument("-n", "--next-hop-self", dest="next_hop_self", nargs="?",
                        const="", default=None, metavar="IP",
                        help="Rewrite NEXT_HOP to our IP, or to IP if given (iBGP)")
    parser.add_argument("--dry", dest="dry_run", action="store_true",
                        help="Dry run: validate and print UPDATEs without connecting")
    parser.add_argument("--filter", dest="filters", action="append", default=[],
                        metavar="KEY=REGEX",
                        help="Only advertise records whose KEY field matches REGEX (repeatable)")
    parser.add_argument("--local-pref", type=int, default=DEFAULT_LOCAL_PREF,
                        help=f"LOCAL_PREF for iBGP sessions (default: {DEFAULT_LOCAL_PREF})")
    parser.add_argument("--hold-time", type=int, default=DEFAULT_HOLD_TIME,
                        help=f"Hold time in seconds (default: {DEFAULT_HOLD_TIME})")
    parser.add_argument("--peer-port", type=int, default=BGP_PORT,
                        help=f"Peer TCP port (default: {BGP_PORT})")
    parser.add_argument("--log-level", default=None,
                        choices=['DEBUG', 'VERBOSE', 'INFO', 'WARNING', 'ERROR'],
                        help="Log level, overrides -v")
    return parser


def main(argv=None):
    """
    Main entry point
    """
    args = build_parser().parse_args(argv)

    setup_logging(args.verbose, args.log_level, args.outfile)
    logger = logging.getLogger("bgp-simple")

    try:
        filters = FilterSet.from_entries(args.filters)
        config = build_peer_config(
            myas=args.myas,
            myip=args.myip,
            peeras=args.peeras,
            peerip=args.peerip,
            next_hop_self=args.next_hop_self,
            local_pref=args.local_pref,
            prefix_limit=args.prefix_limit,
            dry_run=args.dry_run,
            infile=args.infile,
            outfile=args.outfile,
            hold_time=args.hold_time,
            peer_port=args.peer_port,
        )
    except StartupConfigError as e:
        print(f"Error: {e}")
        sys.exit(1)

    log_summary(config)
    if filters:
        logger.info(f"Filters: {filters.describe()}")

    pipeline = RouteImportPipeline(config, filters)

    if config.dry_run:
        count = pipeline.run()
        logger.info(f"Dry run finished, {count} prefixes would be advertised.")
        return

    peer = BGPPeer(BGPPeerConfig(
        local_as=config.local_as,
        local_ip=config.local_ip,
        peer_as=config.peer_as,
        peer_ip=config.peer_ip,
        peer_port=config.peer_port,
        hold_time=config.hold_time,
    ))
    process = BGPProcess()
    controller = SessionController(config, pipeline, process, UpdateLogger())
    controller.attach(peer)

    logger.info("Trying to establish session...")
    process.add_peer(peer)

    try:
        process.event_loop()
    except KeyboardInterrupt:
        print("\nShutting down...")
        sys.exit(0)


if __name__ == "__main__":
    main()
