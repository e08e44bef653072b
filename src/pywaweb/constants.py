from __future__ import annotations

from enum import Enum

WHATSAPP_WEB_URL = "https://web.whatsapp.com/"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/101.0.4951.67 Safari/537.36"
)
DEFAULT_DATA_PATH = "./.wwebjs_auth"

# Selectors raced during the handshake.
INTRO_IMG_SELECTOR = (
    '[data-testid="intro-md-beta-logo-dark"], [data-testid="intro-md-beta-logo-light"], '
    '[data-asset-intro-image-light="true"], [data-asset-intro-image-dark="true"]'
)
INTRO_QRCODE_SELECTOR = "div[data-ref] canvas"
QR_CONTAINER_SELECTOR = "div[data-ref]"
QR_RETRY_BUTTON_SELECTOR = "div[data-ref] > span > button"

STORE_READY_EXPRESSION = "window.Store != undefined"

# The web client refuses to pin more chats than this.
MAX_PIN_COUNT = 3


class Events:
    """Names of the public event stream."""

    QR_RECEIVED = "qr"
    AUTHENTICATED = "authenticated"
    AUTHENTICATION_FAILURE = "auth_failure"
    READY = "ready"
    MESSAGE_RECEIVED = "message"
    MESSAGE_CREATE = "message_create"
    MESSAGE_ACK = "message_ack"
    MESSAGE_REVOKED_ME = "message_revoke_me"
    MESSAGE_REVOKED_EVERYONE = "message_revoke_everyone"
    MEDIA_UPLOADED = "media_uploaded"
    GROUP_JOIN = "group_join"
    GROUP_LEAVE = "group_leave"
    GROUP_UPDATE = "group_update"
    STATE_CHANGED = "change_state"
    DISCONNECTED = "disconnected"
    INCOMING_CALL = "incoming_call"


class WAState(str, Enum):
    CONFLICT = "CONFLICT"
    CONNECTED = "CONNECTED"
    DEPRECATED_VERSION = "DEPRECATED_VERSION"
    OPENING = "OPENING"
    PAIRING = "PAIRING"
    PROXYBLOCK = "PROXYBLOCK"
    SMB_TOS_BLOCK = "SMB_TOS_BLOCK"
    TIMEOUT = "TIMEOUT"
    TOS_BLOCK = "TOS_BLOCK"
    UNLAUNCHED = "UNLAUNCHED"
    UNPAIRED = "UNPAIRED"
    UNPAIRED_IDLE = "UNPAIRED_IDLE"


ACCEPTED_STATES: frozenset[str] = frozenset(
    {WAState.CONNECTED.value, WAState.OPENING.value, WAState.PAIRING.value, WAState.TIMEOUT.value}
)


class DisconnectReason:
    NAVIGATION = "NAVIGATION"
    MAX_QR_RETRIES = "max retries reached"
    PAGE_CLOSED = "page closed"


class MessageAck(int, Enum):
    ACK_ERROR = -1
    ACK_PENDING = 0
    ACK_SERVER = 1
    ACK_DEVICE = 2
    ACK_READ = 3
    ACK_PLAYED = 4


# Message types the bridge classifies on.
GROUP_NOTIFICATION_TYPE = "gp2"
REVOKED_TYPE = "revoked"
GROUP_JOIN_SUBTYPES = frozenset({"add", "invite"})
GROUP_LEAVE_SUBTYPES = frozenset({"remove", "leave"})
