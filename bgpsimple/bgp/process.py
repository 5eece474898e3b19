"""
BGP Process - run-loop for registered peers

Owns the asyncio event loop the whole program runs in. Peers are
registered and deregistered here, and every timer a registered peer
carries is driven from a single scheduler task, so all callbacks run one
at a time on the loop.

Example usage:
    process = BGPProcess()
    peer = BGPPeer(BGPPeerConfig(local_as=65001, local_ip="192.0.2.1",
                                 peer_as=65002, peer_ip="192.0.2.2"))
    peer.add_timer(on_tick, 10)
    process.add_peer(peer)
    process.event_loop()
"""

import asyncio
import logging
from typing import List, Optional, Set

from .peer import BGPPeer


class BGPProcess:
    """
    BGP Process

    Single-threaded scheduler for peers and their timers.
    """

    def __init__(self, tick: float = 1.0):
        """
        Initialize BGP process

        Args:
            tick: Scheduler resolution in seconds
        """
        self.tick = tick
        self.peers: List[BGPPeer] = []
        self.running = False
        self.logger = logging.getLogger("BGPProcess")

        self._stop_event: Optional[asyncio.Event] = None
        self._start_tasks: Set[asyncio.Task] = set()

    def add_peer(self, peer: BGPPeer) -> None:
        """
        Register a peer and start a connection attempt

        Peers added before event_loop() starts are started when it does.
        """
        if peer in self.peers:
            return
        self.peers.append(peer)
        self.logger.debug(f"Added peer {peer.peer_id}")
        if self.running:
            self._start_peer(peer)

    def remove_peer(self, peer: BGPPeer) -> None:
        """Deregister a peer and tear its session down"""
        if peer not in self.peers:
            return
        self.peers.remove(peer)
        peer.shutdown()
        self.logger.debug(f"Removed peer {peer.peer_id}")

    def _start_peer(self, peer: BGPPeer) -> None:
        task = asyncio.create_task(peer.start())
        self._start_tasks.add(task)
        task.add_done_callback(self._start_tasks.discard)

    def event_loop(self) -> None:
        """Run until stop() is called; blocks the caller"""
        asyncio.run(self.run())

    async def run(self) -> None:
        self.running = True
        self._stop_event = asyncio.Event()

        for peer in list(self.peers):
            self._start_peer(peer)

        scheduler = asyncio.create_task(self._timer_loop())
        stopper = asyncio.create_task(self._stop_event.wait())
        try:
            done, _ = await asyncio.wait({scheduler, stopper}, return_when=asyncio.FIRST_COMPLETED)
            if scheduler in done:
                # Surface a failed timer callback to the caller
                scheduler.result()
        finally:
            scheduler.cancel()
            stopper.cancel()
            self.running = False
            for peer in list(self.peers):
                peer.shutdown()

    def stop(self) -> None:
        """Ask the run-loop to exit"""
        self.logger.info("Stopping BGP process")
        if self._stop_event:
            self._stop_event.set()

    async def _timer_loop(self) -> None:
        """Call each registered peer's timers when they are due"""
        loop = asyncio.get_running_loop()

        while True:
            now = loop.time()
            for peer in list(self.peers):
                for timer in list(peer.timers):
                    if timer.next_fire is None:
                        timer.next_fire = now + timer.interval
                    elif now >= timer.next_fire:
                        timer.next_fire = now + timer.interval
                        timer.callback(peer)
            await asyncio.sleep(self.tick)
