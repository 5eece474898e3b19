"""
BGP Peer

Manages the one BGP adjacency the injector keeps, including:
- TCP connection establishment (active, sourced from our own address)
- Message encoding/decoding from wire format
- FSM event processing
- Event callbacks: open, reset, keepalive, update, notification, error

Callbacks are plain synchronous functions called from the event loop with
the peer as first argument. update() writes straight to the transport, so
a callback can send any number of UPDATEs without awaiting.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .constants import *
from .errors import (
    BGPError, CeaseError, unsupported_version_number, bad_peer_as, unacceptable_hold_time,
)
from .fsm import BGPFSM, BGPEvent
from .messages import BGPMessage, BGPOpen, BGPUpdate, BGPKeepalive, BGPNotification


@dataclass
class BGPPeerConfig:
    """Configuration for the BGP adjacency"""
    local_as: int
    local_ip: str
    peer_as: int
    peer_ip: str

    peer_port: int = BGP_PORT
    hold_time: int = DEFAULT_HOLD_TIME
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT


@dataclass
class PeerTimer:
    """Periodic callback registered on a peer"""
    callback: Callable[['BGPPeer'], None]
    interval: float
    next_fire: Optional[float] = None


class BGPPeer:
    """
    BGP Peer

    Owns the TCP transport and FSM for one neighbor and reports protocol
    events through callbacks.
    """

    def __init__(self, config: BGPPeerConfig):
        """
        Initialize BGP peer

        Args:
            config: Peer configuration
        """
        self.config = config
        self.logger = logging.getLogger(f"BGPPeer[{config.peer_ip}]")

        # TCP transport
        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None
        self.connection_task: Optional[asyncio.Task] = None
        self.message_reader_task: Optional[asyncio.Task] = None

        # FSM
        self.fsm = BGPFSM(peer_id=config.peer_ip, hold_time=config.hold_time)
        self.fsm.on_state_change = self._on_fsm_state_change
        self.fsm.on_send_open = self._send_open
        self.fsm.on_send_keepalive = self._send_keepalive
        self.fsm.on_send_notification = self._send_notification
        self.fsm.on_tcp_connect = self._on_fsm_tcp_connect
        self.fsm.on_tcp_disconnect = self._close_connection
        self.fsm.on_local_error = self._report_local_error

        # Event callbacks
        self.on_open: Optional[Callable[['BGPPeer'], None]] = None
        self.on_reset: Optional[Callable[['BGPPeer'], None]] = None
        self.on_keepalive: Optional[Callable[['BGPPeer'], None]] = None
        self.on_update: Optional[Callable[['BGPPeer', BGPUpdate], None]] = None
        self.on_notification: Optional[Callable[['BGPPeer', BGPNotification], None]] = None
        self.on_error: Optional[Callable[['BGPPeer', BGPNotification], None]] = None

        self.timers: List[PeerTimer] = []

        self.stats = {
            'messages_sent': 0,
            'messages_received': 0,
            'updates_sent': 0,
            'updates_received': 0,
            'established_time': None,
        }

    @property
    def peer_id(self) -> str:
        return self.config.peer_ip

    @property
    def peer_as(self) -> int:
        return self.config.peer_as

    def add_timer(self, callback: Callable[['BGPPeer'], None], interval: float) -> None:
        """
        Register a periodic callback, driven by the BGPProcess run-loop

        Args:
            callback: Called with this peer
            interval: Seconds between calls
        """
        self.timers.append(PeerTimer(callback, interval))

    def is_established(self) -> bool:
        """Check if session is in Established state"""
        return self.fsm.state == STATE_ESTABLISHED

    async def start(self) -> None:
        """Start a connection attempt"""
        self.logger.info(f"Starting BGP session to {self.config.peer_ip}:{self.config.peer_port}")
        await self.fsm.process_event(BGPEvent.ManualStart)

    def shutdown(self) -> None:
        """
        Tear the session down synchronously

        Sends a Cease NOTIFICATION when an OPEN has already gone out and
        fires the reset callback when the session was established.
        """
        if self.connection_task and not self.connection_task.done():
            self.connection_task.cancel()
        self.connection_task = None

        if self.fsm.state in (STATE_OPENSENT, STATE_OPENCONFIRM, STATE_ESTABLISHED):
            self._send_message(BGPNotification.from_error(CeaseError()))

        old_state = self.fsm.reset()
        self._close_connection()

        if old_state == STATE_ESTABLISHED:
            self._left_established()

    def update(self, message: BGPUpdate) -> bool:
        """
        Send an UPDATE to the peer

        Args:
            message: UPDATE to send

        Returns:
            True if the message was handed to the transport
        """
        if not self.is_established():
            self.logger.error("Cannot send UPDATE - session not established")
            return False
        if self._send_message(message):
            self.stats['updates_sent'] += 1
            return True
        return False

    # Transport

    def _on_fsm_tcp_connect(self) -> None:
        self.connection_task = asyncio.create_task(self._connect())

    async def _connect(self) -> None:
        """Open the TCP connection, sourced from our own address"""
        try:
            self.logger.info(f"Connecting to {self.config.peer_ip}:{self.config.peer_port} "
                             f"from {self.config.local_ip}")
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self.config.peer_ip, self.config.peer_port,
                                        local_addr=(self.config.local_ip, 0)),
                timeout=self.config.connect_timeout
            )
        except asyncio.TimeoutError:
            self.logger.error(f"Connection timeout to {self.config.peer_ip}")
            await self.fsm.process_event(BGPEvent.TcpConnectionFails)
            return
        except OSError as e:
            self.logger.error(f"Connection failed to {self.config.peer_ip}: {e}")
            await self.fsm.process_event(BGPEvent.TcpConnectionFails)
            return

        self.logger.info(f"TCP connection established to {self.config.peer_ip}")
        self.reader, self.writer = reader, writer
        self.message_reader_task = asyncio.create_task(self._message_reader(reader))
        await self.fsm.process_event(BGPEvent.TcpConnectionConfirmed)

    def _close_connection(self) -> None:
        """Close the TCP connection and stop its reader"""
        if self.message_reader_task and self.message_reader_task is not asyncio.current_task():
            self.message_reader_task.cancel()
        self.message_reader_task = None

        if self.writer:
            self.writer.close()
        self.writer = None
        self.reader = None

    def _send_message(self, message: BGPMessage) -> bool:
        msg_name = MESSAGE_TYPE_NAMES.get(message.msg_type, f"UNKNOWN({message.msg_type})")

        if not self.writer or self.writer.is_closing():
            self.logger.error(f"Cannot send {msg_name} - no open connection")
            return False

        data = message.encode()
        self.logger.debug(f"Sending {msg_name} ({len(data)} bytes): {data.hex()}")
        self.writer.write(data)
        self.stats['messages_sent'] += 1
        return True

    def _send_open(self) -> None:
        self._send_message(BGPOpen(
            version=BGP_VERSION,
            my_as=self.config.local_as,
            hold_time=self.config.hold_time,
            bgp_identifier=self.config.local_ip,
        ))

    def _send_keepalive(self) -> None:
        self._send_message(BGPKeepalive())

    def _send_notification(self, error_code: int, error_subcode: int, data: bytes = b'') -> None:
        self._send_message(BGPNotification(error_code, error_subcode, data))

    async def _message_reader(self, reader: asyncio.StreamReader) -> None:
        """Read and process BGP messages until the connection goes away"""
        self.logger.debug("Message reader started")

        try:
            while self.reader is reader:
                header = await reader.readexactly(BGP_HEADER_SIZE)
                try:
                    msg_type, length = BGPMessage.parse_header(header)
                    body = await reader.readexactly(length - BGP_HEADER_SIZE)
                    message = BGPMessage.decode(header + body)
                    self.stats['messages_received'] += 1
                    await self._process_message(message)
                except BGPError as e:
                    await self._handle_local_error(e)
                    return

        except (asyncio.IncompleteReadError, ConnectionError) as e:
            self.logger.warning(f"Connection closed by peer: {type(e).__name__}")
            if self.reader is reader:
                await self.fsm.process_event(BGPEvent.TcpConnectionFails)
                self._close_connection()
        finally:
            self.logger.debug("Message reader stopped")

    def _report_local_error(self, error: BGPError) -> BGPNotification:
        """Pass a locally detected protocol error to the error callback"""
        notification = BGPNotification.from_error(error)
        if self.on_error:
            self.on_error(self, notification)
        return notification

    async def _handle_local_error(self, error: BGPError) -> None:
        """Notify the peer of an error found while decoding and drop the session"""
        self.logger.error(str(error))
        self._send_message(self._report_local_error(error))

        if error.error_code == ERR_OPEN_MESSAGE:
            event = BGPEvent.BGPOpenMsgErr
        elif error.error_code == ERR_UPDATE_MESSAGE:
            event = BGPEvent.UpdateMsgErr
        else:
            event = BGPEvent.BGPHeaderErr
        await self.fsm.process_event(event)

    async def _process_message(self, message: BGPMessage) -> None:
        if isinstance(message, BGPOpen):
            await self._process_open(message)
        elif isinstance(message, BGPUpdate):
            await self._process_update(message)
        elif isinstance(message, BGPKeepalive):
            await self._process_keepalive()
        elif isinstance(message, BGPNotification):
            await self._process_notification(message)

    async def _process_open(self, message: BGPOpen) -> None:
        self.logger.info(f"Received OPEN: AS={message.my_as}, ID={message.bgp_identifier}, "
                         f"HoldTime={message.hold_time}")

        if message.version != BGP_VERSION:
            raise unsupported_version_number(message.version)
        if message.my_as != self.config.peer_as:
            raise bad_peer_as(message.my_as, self.config.peer_as)
        if self.fsm.negotiate_hold_time(message.hold_time) < 0:
            raise unacceptable_hold_time(message.hold_time)

        await self.fsm.process_event(BGPEvent.BGPOpen)

    async def _process_update(self, message: BGPUpdate) -> None:
        self.stats['updates_received'] += 1
        await self.fsm.process_event(BGPEvent.UpdateMsg)
        if self.is_established() and self.on_update:
            self.on_update(self, message)

    async def _process_keepalive(self) -> None:
        self.logger.debug("Received KEEPALIVE")
        await self.fsm.process_event(BGPEvent.KeepAliveMsg)
        if self.is_established() and self.on_keepalive:
            self.on_keepalive(self)

    async def _process_notification(self, message: BGPNotification) -> None:
        if self.on_notification:
            self.on_notification(self, message)
        await self.fsm.process_event(BGPEvent.NotifMsg)

    # FSM hooks

    def _on_fsm_state_change(self, old_state: int, new_state: int) -> None:
        if new_state == STATE_ESTABLISHED:
            self.stats['established_time'] = time.time()
            self.logger.info(f"BGP session ESTABLISHED with {self.config.peer_ip}")
            if self.on_open:
                self.on_open(self)
        elif old_state == STATE_ESTABLISHED:
            self._left_established()

    def _left_established(self) -> None:
        self.stats['established_time'] = None
        self.logger.warning(f"BGP session DOWN with {self.config.peer_ip}")
        if self.on_reset:
            self.on_reset(self)

    def get_statistics(self) -> Dict:
        stats = self.stats.copy()
        stats['fsm_state'] = self.fsm.get_state_name()
        return stats
