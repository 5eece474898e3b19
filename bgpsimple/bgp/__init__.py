"""
BGP-4 session engine (RFC 4271)

A minimal speaker for holding a single adjacency:
- OPEN / KEEPALIVE negotiation via the connection FSM
- UPDATE encoding for injected routes and decoding of received ones
- NOTIFICATION handling with a decoded error taxonomy

Main Classes:
    BGPProcess: Run-loop owning peers and their timers
    BGPPeer: One peer session with event callbacks

Example:
    from bgpsimple.bgp import BGPProcess, BGPPeer, BGPPeerConfig

    peer = BGPPeer(BGPPeerConfig(local_as=65001, local_ip="192.0.2.1",
                                 peer_as=65002, peer_ip="192.0.2.2"))
    peer.on_open = lambda p: print("up")
    process = BGPProcess()
    process.add_peer(peer)
    process.event_loop()
"""

from .process import BGPProcess
from .peer import BGPPeer, BGPPeerConfig
from .fsm import BGPFSM, BGPEvent

from .messages import BGPMessage, BGPOpen, BGPUpdate, BGPKeepalive, BGPNotification

from .attributes import (
    PathAttribute, OriginAttribute, ASPathAttribute, NextHopAttribute,
    MEDAttribute, LocalPrefAttribute, AtomicAggregateAttribute,
    AggregatorAttribute, CommunitiesAttribute,
)

from .communities import parse_community, format_community

from .errors import (
    describe, format_error_data,
    BGPError, MessageHeaderError, OpenMessageError, UpdateMessageError,
    HoldTimerExpiredError, FSMError, CeaseError,
)

__all__ = [
    'BGPProcess', 'BGPPeer', 'BGPPeerConfig', 'BGPFSM', 'BGPEvent',

    'BGPMessage', 'BGPOpen', 'BGPUpdate', 'BGPKeepalive', 'BGPNotification',

    'PathAttribute', 'OriginAttribute', 'ASPathAttribute', 'NextHopAttribute',
    'MEDAttribute', 'LocalPrefAttribute', 'AtomicAggregateAttribute',
    'AggregatorAttribute', 'CommunitiesAttribute',

    'parse_community', 'format_community',

    'describe', 'format_error_data',
    'BGPError', 'MessageHeaderError', 'OpenMessageError', 'UpdateMessageError',
    'HoldTimerExpiredError', 'FSMError', 'CeaseError',
]
