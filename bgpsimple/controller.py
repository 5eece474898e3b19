"""
Session Lifecycle Controller

Reacts to the peer's timer tick and lifecycle callbacks. On every tick a
session that is down is torn down and re-registered, forcing a fresh
connection attempt; an established session gets the dump file advertised
exactly once per connection.
"""

import logging
from dataclasses import dataclass

from .bgp.messages import BGPNotification, BGPUpdate
from .config import PeerConfig, VERBOSE
from .pipeline import RouteImportPipeline
from .update_log import UpdateLogger


@dataclass
class SessionState:
    """Per-connection flag; only the controller mutates it"""
    full_update_sent: bool = False


class SessionController:
    """
    Session Lifecycle Controller

    All handlers are synchronous and called one at a time from the
    BGPProcess run-loop.
    """

    def __init__(self, config: PeerConfig, pipeline: RouteImportPipeline, process,
                 update_logger: UpdateLogger = None):
        """
        Args:
            config: Session parameters
            pipeline: Pipeline run once per established connection
            process: BGPProcess the peer is registered with
            update_logger: Receives UPDATE, NOTIFICATION and error events
        """
        self.config = config
        self.pipeline = pipeline
        self.process = process
        self.update_logger = update_logger or UpdateLogger()
        self.state = SessionState()
        self.logger = logging.getLogger("SessionController")

    def attach(self, peer) -> None:
        """Wire every handler onto a peer and register the periodic timer"""
        peer.on_open = self.on_open
        peer.on_reset = self.on_reset
        peer.on_keepalive = self.on_keepalive
        peer.on_update = self.on_update
        peer.on_notification = self.on_notification
        peer.on_error = self.on_error
        peer.add_timer(self.on_timer, self.config.timer_interval)

    def on_timer(self, peer) -> None:
        self.logger.debug("Loop triggered")
        if not peer.is_established():
            self.reconnect(peer)
        elif self.config.infile and not self.state.full_update_sent:
            self.logger.info("Sending full update.")
            count = self.pipeline.run(peer)
            self.logger.info("Full update sent.")
            self.logger.log(VERBOSE, f"{count} prefixes advertised to {peer.peer_id}.")
            self.state.full_update_sent = True

    def reconnect(self, peer) -> None:
        """Deregister then re-register the peer so the engine starts a new connection"""
        self.logger.debug(f"Reconnecting to peer {peer.peer_id}, AS {peer.peer_as}")
        self.process.remove_peer(peer)
        self.process.add_peer(peer)
        self.state.full_update_sent = False

    def on_open(self, peer) -> None:
        self.logger.log(VERBOSE, f"Connection established with peer {peer.peer_id}, AS {peer.peer_as}.")
        self.state.full_update_sent = False

    def on_reset(self, peer) -> None:
        self.logger.error(f"Connection reset with peer {peer.peer_id}, AS {peer.peer_as}.")
        self.logger.debug(f"Session statistics: {peer.get_statistics()}")

    def on_keepalive(self, peer) -> None:
        self.logger.debug(f"Keepalive received from peer {peer.peer_id}, AS {peer.peer_as}.")

    def on_update(self, peer, update: BGPUpdate) -> None:
        self.update_logger.log_update(peer.peer_id, peer.peer_as, update)

    def on_notification(self, peer, notification: BGPNotification) -> None:
        self.update_logger.log_notification(peer.peer_id, peer.peer_as, notification)

    def on_error(self, peer, notification: BGPNotification) -> None:
        self.update_logger.log_error(peer.peer_id, peer.peer_as, notification)
