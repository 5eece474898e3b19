"""
BGP Finite State Machine (RFC 4271 Section 8)

Implements the connection FSM with hold and keepalive timers.

States:
- Idle (0): Initial state, refuse connections
- Connect (1): Waiting for TCP connection
- OpenSent (3): TCP established, OPEN sent
- OpenConfirm (4): OPEN received, waiting for KEEPALIVE
- Established (5): Peering is up

There is no ConnectRetry timer: a failed connection drops back to Idle
and the owner of the peer decides when to try again.
"""

import asyncio
import logging
from enum import IntEnum
from typing import Callable, Optional

from .constants import *
from .errors import BGPError, hold_timer_expired, unexpected_message


class BGPEvent(IntEnum):
    """BGP FSM Events (RFC 4271 Section 8.1)"""
    ManualStart = 1

    HoldTimer_Expires = 10
    KeepaliveTimer_Expires = 11

    TcpConnectionConfirmed = 17
    TcpConnectionFails = 18

    BGPOpen = 19
    BGPHeaderErr = 21
    BGPOpenMsgErr = 22

    NotifMsg = 24
    KeepAliveMsg = 25
    UpdateMsg = 26
    UpdateMsgErr = 27


# Events after which the transport is torn down without the FSM sending
# its own NOTIFICATION (the peer already sent one, or the caller did)
_ERROR_EVENTS = (BGPEvent.BGPHeaderErr, BGPEvent.BGPOpenMsgErr,
                 BGPEvent.UpdateMsgErr, BGPEvent.NotifMsg)


class BGPFSM:
    """
    BGP Finite State Machine (RFC 4271 Section 8.2)

    Manages peer state transitions and timers; all side effects go through
    the callbacks set by the owning peer.
    """

    def __init__(self, peer_id: str, hold_time: int = DEFAULT_HOLD_TIME):
        """
        Initialize BGP FSM

        Args:
            peer_id: Peer address, used for logging
            hold_time: Proposed hold time in seconds
        """
        self.peer_id = peer_id
        self.state = STATE_IDLE

        self.hold_time = hold_time
        self.negotiated_hold_time: Optional[int] = None

        self._hold_timer: Optional[asyncio.Task] = None
        self._keepalive_timer: Optional[asyncio.Task] = None

        self.logger = logging.getLogger(f"BGPFSM[{peer_id}]")

        # Callbacks (set by the peer)
        self.on_state_change: Optional[Callable[[int, int], None]] = None
        self.on_send_open: Optional[Callable[[], None]] = None
        self.on_send_keepalive: Optional[Callable[[], None]] = None
        self.on_send_notification: Optional[Callable[[int, int], None]] = None
        self.on_tcp_connect: Optional[Callable[[], None]] = None
        self.on_tcp_disconnect: Optional[Callable[[], None]] = None
        self.on_local_error: Optional[Callable[[BGPError], None]] = None

    def get_state_name(self) -> str:
        return FSM_STATE_NAMES.get(self.state, f"Unknown({self.state})")

    async def process_event(self, event: BGPEvent) -> None:
        """
        Process BGP FSM event

        Args:
            event: BGP event to process
        """
        old_state = self.state

        self.logger.debug(f"Processing event {event.name} in state {self.get_state_name()}")

        if self.state == STATE_IDLE:
            self._process_idle(event)
        elif self.state == STATE_CONNECT:
            self._process_connect(event)
        elif self.state == STATE_OPENSENT:
            self._process_opensent(event)
        elif self.state == STATE_OPENCONFIRM:
            self._process_openconfirm(event)
        elif self.state == STATE_ESTABLISHED:
            self._process_established(event)

        if self.state != old_state:
            self.logger.info(f"State transition: {FSM_STATE_NAMES[old_state]} -> {FSM_STATE_NAMES[self.state]}")
            if self.on_state_change:
                result = self.on_state_change(old_state, self.state)
                if asyncio.iscoroutine(result):
                    await result

    def _process_idle(self, event: BGPEvent) -> None:
        if event == BGPEvent.ManualStart:
            if self.on_tcp_connect:
                self.on_tcp_connect()
            self.state = STATE_CONNECT

    def _process_connect(self, event: BGPEvent) -> None:
        if event == BGPEvent.TcpConnectionConfirmed:
            if self.on_send_open:
                self.on_send_open()
            self._start_hold_timer()
            self.state = STATE_OPENSENT

        elif event == BGPEvent.TcpConnectionFails:
            self._stop_all_timers()
            self.state = STATE_IDLE

    def _process_opensent(self, event: BGPEvent) -> None:
        if event == BGPEvent.BGPOpen:
            self._start_hold_timer()
            self._start_keepalive_timer()
            if self.on_send_keepalive:
                self.on_send_keepalive()
            self.state = STATE_OPENCONFIRM
        else:
            self._process_common(event)

    def _process_openconfirm(self, event: BGPEvent) -> None:
        if event == BGPEvent.KeepAliveMsg:
            self._start_hold_timer()
            self.state = STATE_ESTABLISHED
        elif event == BGPEvent.KeepaliveTimer_Expires:
            self._send_keepalive()
        else:
            self._process_common(event)

    def _process_established(self, event: BGPEvent) -> None:
        if event in (BGPEvent.KeepAliveMsg, BGPEvent.UpdateMsg):
            self._start_hold_timer()
        elif event == BGPEvent.KeepaliveTimer_Expires:
            self._send_keepalive()
        else:
            self._process_common(event)

    def _process_common(self, event: BGPEvent) -> None:
        """Events handled the same way in OpenSent, OpenConfirm and Established"""
        if event == BGPEvent.HoldTimer_Expires:
            self._stop(error=hold_timer_expired())
        elif event == BGPEvent.TcpConnectionFails:
            self._stop_all_timers()
            self.state = STATE_IDLE
        elif event in _ERROR_EVENTS:
            self._stop()
        elif event in (BGPEvent.BGPOpen, BGPEvent.KeepAliveMsg, BGPEvent.UpdateMsg):
            # Message not valid in this state (RFC 4271 Section 6.6)
            subcode = {STATE_OPENSENT: 1, STATE_OPENCONFIRM: 2, STATE_ESTABLISHED: 3}[self.state]
            self._stop(error=unexpected_message(subcode))

    def _stop(self, error: Optional[BGPError] = None) -> None:
        """Drop to Idle, notifying the peer of a locally detected error first"""
        if error is not None:
            self.logger.error(str(error))
            if self.on_local_error:
                self.on_local_error(error)
            if self.on_send_notification:
                self.on_send_notification(error.error_code, error.error_subcode)
        self._stop_all_timers()
        if self.state != STATE_IDLE and self.on_tcp_disconnect:
            self.on_tcp_disconnect()
        self.state = STATE_IDLE

    def reset(self) -> int:
        """
        Drop to Idle immediately (ManualStop), without callbacks

        The caller owns the transport and tears it down itself.

        Returns:
            The state the FSM was in
        """
        old_state = self.state
        self._stop_all_timers()
        self.negotiated_hold_time = None
        self.state = STATE_IDLE
        if old_state != STATE_IDLE:
            self.logger.info(f"State transition: {FSM_STATE_NAMES[old_state]} -> Idle (manual stop)")
        return old_state

    def _send_keepalive(self) -> None:
        if self.on_send_keepalive:
            self.on_send_keepalive()
        self._start_keepalive_timer()

    # Timer management

    def _effective_hold_time(self) -> int:
        if self.negotiated_hold_time is not None:
            return self.negotiated_hold_time
        return self.hold_time

    def _start_hold_timer(self) -> None:
        self._stop_hold_timer()
        hold_time = self._effective_hold_time()
        if hold_time > 0:
            self._hold_timer = asyncio.create_task(
                self._timer_task(hold_time, BGPEvent.HoldTimer_Expires)
            )

    def _stop_hold_timer(self) -> None:
        if self._hold_timer:
            self._hold_timer.cancel()
            self._hold_timer = None

    def _start_keepalive_timer(self) -> None:
        self._stop_keepalive_timer()
        keepalive_time = self._effective_hold_time() // 3
        if keepalive_time > 0:
            self.logger.debug(f"Starting keepalive timer: {keepalive_time} seconds")
            self._keepalive_timer = asyncio.create_task(
                self._timer_task(keepalive_time, BGPEvent.KeepaliveTimer_Expires)
            )

    def _stop_keepalive_timer(self) -> None:
        if self._keepalive_timer:
            self._keepalive_timer.cancel()
            self._keepalive_timer = None

    def _stop_all_timers(self) -> None:
        self._stop_hold_timer()
        self._stop_keepalive_timer()

    async def _timer_task(self, delay: int, event: BGPEvent) -> None:
        """Fire an event after delay seconds unless cancelled first"""
        await asyncio.sleep(delay)
        # Drop our own handle so stopping timers from inside the event does not cancel us
        if event == BGPEvent.HoldTimer_Expires:
            self._hold_timer = None
        else:
            self._keepalive_timer = None
        await self.process_event(event)

    def negotiate_hold_time(self, peer_hold_time: int) -> int:
        """
        Negotiate hold time with peer (RFC 4271 Section 4.2)

        Returns:
            Negotiated hold time, or -1 if the peer's value is unacceptable
        """
        if peer_hold_time != 0 and peer_hold_time < MIN_HOLD_TIME:
            return -1

        if peer_hold_time == 0 or self.hold_time == 0:
            negotiated = 0
        else:
            negotiated = min(self.hold_time, peer_hold_time)

        self.negotiated_hold_time = negotiated
        return negotiated
