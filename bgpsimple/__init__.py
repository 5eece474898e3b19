"""
bgp-simple - BGP route injector

Establishes a single BGP session and advertises routes read from a
bgpdump (`bgpdump -m`) table dump, logging everything sent and received.

Main Classes:
    RouteImportPipeline: Checks, filters and advertises dump records
    SessionController: Reconnects and triggers the full update per session
    FilterSet: Per-field regular expression filters
    UpdateLogger: Received UPDATE / NOTIFICATION / error logging
"""

__version__ = "0.1.0"
