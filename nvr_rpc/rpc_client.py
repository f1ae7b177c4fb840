# nvr_rpc/rpc_client.py
"""
RPC2 session manager.

Builds request envelopes, tracks the session token and request ids, and
dispatches to the plain, login, outside-command or encrypted transport.

Session state machine:
    NEW -> LOGIN_CHALLENGE_SENT -> AUTHENTICATED -> LOGGED_OUT
"""
import logging
import threading
from enum import Enum, auto
from typing import Any, Callable, Dict, Optional, TypeVar

from nvr_rpc import config
from nvr_rpc.crypto_config import CryptoNegotiationStore
from nvr_rpc.encryption import CryptoProfile, HybridEncryptionEngine, decrypt_payload
from nvr_rpc.errors import DecodeError, PreconditionError
from nvr_rpc.http_client import HttpTransport
from nvr_rpc.protocol.constants import RPCMethod
from nvr_rpc.protocol.envelope import RPCRequest, RPCResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionState(Enum):
    NEW = auto()
    LOGIN_CHALLENGE_SENT = auto()
    AUTHENTICATED = auto()
    LOGGED_OUT = auto()


def _short(token: Optional[str]) -> str:
    if not token:
        return "none"
    return token[:8] + "..." if len(token) > 8 else token


class RPCClient:
    """
    One session against one device.

    Not meant to be shared between independent logins: create one client
    per device connection. The crypto store is injected so tests (and the
    service facade) decide its scope.
    """

    def __init__(self, transport: HttpTransport, crypto_store: Optional[CryptoNegotiationStore] = None):
        self.transport = transport
        self.crypto_store = crypto_store or CryptoNegotiationStore()
        self.engine = HybridEncryptionEngine(self.crypto_store)

        self._lock = threading.Lock()
        self._session: Optional[str] = None
        self._request_counter = 0
        self._state = SessionState.NEW

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    def _set_state(self, new_state: SessionState, reason: str = ""):
        with self._lock:
            old_state = self._state
            self._state = new_state
        if old_state != new_state:
            logger.info(f"[STATE] {old_state.name} → {new_state.name} ({reason})")

    def mark_challenge_sent(self):
        self._set_state(SessionState.LOGIN_CHALLENGE_SENT, "login challenge received")

    @property
    def session_id(self) -> Optional[str]:
        with self._lock:
            return self._session

    @property
    def has_active_session(self) -> bool:
        return self.session_id is not None

    @property
    def request_counter(self) -> int:
        with self._lock:
            return self._request_counter

    def set_session(self, session_id, request_counter: int = 0):
        """Stores the token issued at login and restarts the request counter."""
        with self._lock:
            self._session = str(session_id)
            self._request_counter = request_counter
        self._set_state(SessionState.AUTHENTICATED, f"session {_short(str(session_id))}")

    def clear_session(self):
        with self._lock:
            had_session = self._session is not None or self._state is not SessionState.NEW
            self._session = None
            self._request_counter = 0
        if had_session:
            self._set_state(SessionState.LOGGED_OUT, "session cleared")

    def next_request_id(self) -> int:
        with self._lock:
            self._request_counter += 1
            return self._request_counter

    # ------------------------------------------------------------------
    # Plain calls
    # ------------------------------------------------------------------

    def build_request(self, method: str, params: Optional[Dict[str, Any]] = None,
                      include_session: bool = True, session: Optional[str] = None) -> RPCRequest:
        if session is None and include_session:
            session = self.session_id
            if session is None:
                raise PreconditionError(f"No active RPC session for {method}")
        return RPCRequest(method=method, params=params, session=session, id=self.next_request_id())

    async def send(self, method: str, params: Optional[Dict[str, Any]] = None, use_login_endpoint: bool = False,
                   include_session: bool = True, session: Optional[str] = None,
                   allow_challenge: bool = False) -> RPCResponse:
        """
        Sends one RPC and decodes the generic response envelope.

        With allow_challenge, a login challenge error is returned to the
        caller instead of raised. Any other error object raises RemoteError.
        """
        request = self.build_request(method, params, include_session=include_session, session=session)
        endpoint = config.RPC_LOGIN_ENDPOINT if use_login_endpoint else config.RPC_ENDPOINT

        logger.debug(f"[RPC] → {method} id={request.id} session={_short(request.session)} via {endpoint}")
        raw = await self.transport.post_json(endpoint, request.encode())
        response = RPCResponse.from_bytes(raw, context=method)

        if response.error is not None:
            if allow_challenge and response.is_challenge:
                logger.debug(f"[RPC] ← {method} challenge (code {response.error.code})")
                return response
            logger.error(f"[RPC] ← {method} error {response.error.code}: {response.error.message}")
            response.raise_for_error()

        logger.debug(f"[RPC] ← {method} id={response.id} result={response.result is not None}")
        return response

    async def send_outside_cmd(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Posts to the outside-command endpoint. The body is decoded as-is,
        not as the generic envelope.
        """
        request = self.build_request(method, params, include_session=False)
        logger.debug(f"[RPC] → {method} id={request.id} via {config.OUTSIDE_CMD_ENDPOINT}")
        raw = await self.transport.post_json(config.OUTSIDE_CMD_ENDPOINT, request.encode())

        response = RPCResponse.from_bytes(raw, context=method)
        response.raise_for_error()
        return {"result": response.result, "params": response.params, "id": response.id}

    # ------------------------------------------------------------------
    # Encrypted calls
    # ------------------------------------------------------------------

    async def send_encrypted(self, method: str, payload: Any,
                             decoder: Optional[Callable[[Any], T]] = None) -> T:
        """
        Sends `payload` through system.multiSec and decrypts the reply.

        The ephemeral key lives in this frame only: concurrent calls each
        decrypt their own response with their own key.
        """
        if not self.has_active_session:
            raise PreconditionError("No active RPC session for encrypted request")

        packet, key = self.engine.encrypt(payload)
        profile = CryptoProfile.from_cipher_name(packet.cipher)

        logger.debug(f"[RPC] Encrypted call {method} with {packet.cipher}")
        response = await self.send(RPCMethod.MULTI_SEC, packet.to_params())

        params = response.params
        if not isinstance(params, dict) or not isinstance(params.get("content"), str):
            raise DecodeError(f"No encrypted data received for {method}")

        decrypted = decrypt_payload(params["content"], key, profile)
        if decrypted is None:
            raise DecodeError(f"Encrypted response for {method} is not valid JSON")

        if decoder is None:
            return decrypted
        return decoder(decrypted)

    async def send_encrypted_command(self, method: str, payload: Any) -> RPCResponse:
        """
        Sends `method` with an encrypted payload as its params and returns
        the plain response envelope. Used by setters whose reply is only a
        result flag.
        """
        if not self.has_active_session:
            raise PreconditionError(f"No active RPC session for {method}")

        packet, _ = self.engine.encrypt(payload)
        logger.debug(f"[RPC] Encrypted command {method} with {packet.cipher}")
        return await self.send(method, packet.to_params())
