"""
BGP Protocol Constants (RFC 4271)
"""

BGP_VERSION = 4
BGP_PORT = 179

# Message header
BGP_MARKER = b'\xff' * 16
BGP_HEADER_SIZE = 19
BGP_MAX_MESSAGE_SIZE = 4096

# Message types
MSG_OPEN = 1
MSG_UPDATE = 2
MSG_NOTIFICATION = 3
MSG_KEEPALIVE = 4

MESSAGE_TYPE_NAMES = {
    MSG_OPEN: "OPEN",
    MSG_UPDATE: "UPDATE",
    MSG_NOTIFICATION: "NOTIFICATION",
    MSG_KEEPALIVE: "KEEPALIVE",
}

# FSM states
STATE_IDLE = 0
STATE_CONNECT = 1
STATE_ACTIVE = 2
STATE_OPENSENT = 3
STATE_OPENCONFIRM = 4
STATE_ESTABLISHED = 5

FSM_STATE_NAMES = {
    STATE_IDLE: "Idle",
    STATE_CONNECT: "Connect",
    STATE_ACTIVE: "Active",
    STATE_OPENSENT: "OpenSent",
    STATE_OPENCONFIRM: "OpenConfirm",
    STATE_ESTABLISHED: "Established",
}

# Timers (seconds)
DEFAULT_HOLD_TIME = 180
MIN_HOLD_TIME = 3
DEFAULT_CONNECT_TIMEOUT = 30

# Path attribute type codes
ATTR_ORIGIN = 1
ATTR_AS_PATH = 2
ATTR_NEXT_HOP = 3
ATTR_MED = 4
ATTR_LOCAL_PREF = 5
ATTR_ATOMIC_AGGREGATE = 6
ATTR_AGGREGATOR = 7
ATTR_COMMUNITIES = 8

# Path attribute flags
ATTR_FLAG_OPTIONAL = 0x80
ATTR_FLAG_TRANSITIVE = 0x40
ATTR_FLAG_PARTIAL = 0x20
ATTR_FLAG_EXTENDED = 0x10

# ORIGIN values
ORIGIN_IGP = 0
ORIGIN_EGP = 1
ORIGIN_INCOMPLETE = 2

ORIGIN_NAMES = {
    ORIGIN_IGP: "IGP",
    ORIGIN_EGP: "EGP",
    ORIGIN_INCOMPLETE: "INCOMPLETE",
}

# AS_PATH segment types
AS_SET = 1
AS_SEQUENCE = 2
AS_SEGMENT_MAX_LENGTH = 255

# NOTIFICATION error codes
ERR_MESSAGE_HEADER = 1
ERR_OPEN_MESSAGE = 2
ERR_UPDATE_MESSAGE = 3
ERR_HOLD_TIMER_EXPIRED = 4
ERR_FSM = 5
ERR_CEASE = 6
ERR_ROUTE_REFRESH = 7

# Well-known communities (RFC 1997, RFC 3765)
COMMUNITY_NO_EXPORT = 0xFFFFFF01
COMMUNITY_NO_ADVERTISE = 0xFFFFFF02
COMMUNITY_NO_EXPORT_SUBCONFED = 0xFFFFFF03
COMMUNITY_NOPEER = 0xFFFFFF04

WELL_KNOWN_COMMUNITIES = {
    COMMUNITY_NO_EXPORT: "NO_EXPORT",
    COMMUNITY_NO_ADVERTISE: "NO_ADVERTISE",
    COMMUNITY_NO_EXPORT_SUBCONFED: "NO_EXPORT_SUBCONFED",
    COMMUNITY_NOPEER: "NOPEER",
}
