# nvr_rpc/digest_auth.py
"""
HTTP digest authentication against the recorder's CGI interface.

Flow:
    1. GET the probe resource without credentials -> 401 + WWW-Authenticate
    2. Compute the digest response (MD5, lowercase hex)
    3. GET the same resource with an Authorization header -> 2xx

A second 401 after presenting credentials is final; the nonce count is
never incremented for a retry.
"""
import hashlib
import logging
import re
import secrets
import string
import threading
from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, Optional

from nvr_rpc import config
from nvr_rpc.errors import AuthError, InvalidDigestHeader, MissingAuthHeader, TransportError
from nvr_rpc.http_client import HttpTransport

logger = logging.getLogger(__name__)

_PARAM_RE = re.compile(r'(\w+)=(?:"([^"]*)"|([^,\s]+))')
_CNONCE_ALPHABET = string.ascii_lowercase + string.digits

NONCE_COUNT = "00000001"


@dataclass(frozen=True)
class DigestChallenge:
    realm: str
    nonce: str
    qop: Optional[str] = None
    opaque: Optional[str] = None
    algorithm: Optional[str] = None

    def selected_qop(self) -> Optional[str]:
        """qop token to answer with. A list such as "auth,auth-int" picks auth."""
        if not self.qop:
            return None
        options = [o.strip() for o in self.qop.split(",") if o.strip()]
        if "auth" in options:
            return "auth"
        raise AuthError(f"Unsupported digest qop: {self.qop}")


def parse_challenge(header_value: str) -> DigestChallenge:
    """
    Parses a WWW-Authenticate digest header.

    Accepts both key="value" and key=value forms. Raises InvalidDigestHeader
    when realm or nonce is missing.
    """
    text = header_value.strip()
    if text[:6].lower() == "digest":
        text = text[6:]

    fields: Dict[str, str] = {}
    for match in _PARAM_RE.finditer(text):
        key, quoted, bare = match.groups()
        fields[key.lower()] = quoted if quoted is not None else bare

    if "realm" not in fields or "nonce" not in fields:
        raise InvalidDigestHeader(header_value)

    return DigestChallenge(
        realm=fields["realm"],
        nonce=fields["nonce"],
        qop=fields.get("qop"),
        opaque=fields.get("opaque"),
        algorithm=fields.get("algorithm"),
    )


def _md5_hex(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def compute_digest_response(username: str, password: str, realm: str, nonce: str, method: str, uri: str,
                            qop: Optional[str] = None, client_nonce: Optional[str] = None,
                            nonce_count: Optional[str] = None) -> str:
    ha1 = _md5_hex(f"{username}:{realm}:{password}")
    ha2 = _md5_hex(f"{method}:{uri}")
    if qop:
        if client_nonce is None or nonce_count is None:
            raise AuthError("qop digest requires a client nonce and a nonce count")
        return _md5_hex(f"{ha1}:{nonce}:{nonce_count}:{client_nonce}:{qop}:{ha2}")
    return _md5_hex(f"{ha1}:{nonce}:{ha2}")


def generate_client_nonce(length: int = 8) -> str:
    return "".join(secrets.choice(_CNONCE_ALPHABET) for _ in range(length))


def build_authorization_header(username: str, password: str, challenge: DigestChallenge,
                               method: str, uri: str, client_nonce: Optional[str] = None,
                               nonce_count: str = NONCE_COUNT) -> str:
    if challenge.algorithm and challenge.algorithm.upper() != "MD5":
        raise AuthError(f"Unsupported digest algorithm: {challenge.algorithm}")

    qop = challenge.selected_qop()
    if qop and client_nonce is None:
        client_nonce = generate_client_nonce()

    response = compute_digest_response(
        username, password, challenge.realm, challenge.nonce, method, uri,
        qop=qop, client_nonce=client_nonce if qop else None, nonce_count=nonce_count if qop else None,
    )

    header = (
        f'Digest username="{username}", realm="{challenge.realm}", nonce="{challenge.nonce}", '
        f'uri="{uri}", response="{response}"'
    )
    if challenge.algorithm:
        header += f", algorithm={challenge.algorithm}"
    if qop:
        header += f', qop={qop}, nc={nonce_count}, cnonce="{client_nonce}"'
    if challenge.opaque is not None:
        header += f', opaque="{challenge.opaque}"'
    return header


class DigestState(Enum):
    UNAUTHENTICATED = auto()
    AUTHENTICATED = auto()


class DigestAuthenticator:
    """Runs the two-request digest handshake over an HttpTransport."""

    def __init__(self, transport: HttpTransport, username: str, password: str,
                 probe_path: str = config.CGI_PROBE_PATH):
        self.transport = transport
        self.username = username
        self.password = password
        self.probe_path = probe_path
        self._state = DigestState.UNAUTHENTICATED
        self._lock = threading.Lock()

    @property
    def state(self) -> DigestState:
        with self._lock:
            return self._state

    @property
    def is_authenticated(self) -> bool:
        return self.state is DigestState.AUTHENTICATED

    def _set_state(self, new_state: DigestState, reason: str = ""):
        with self._lock:
            if self._state != new_state:
                logger.info(f"[STATE] {self._state.name} → {new_state.name} ({reason})")
                self._state = new_state

    def reset(self):
        self._set_state(DigestState.UNAUTHENTICATED, "reset")

    async def authenticate(self) -> bool:
        logger.info(f"[DIGEST] Probing {self.transport.url_for(self.probe_path)}")
        probe = await self.transport.request("GET", self.probe_path)

        if probe.ok:
            self._set_state(DigestState.AUTHENTICATED, "no challenge required")
            return True
        if probe.status_code != 401:
            raise TransportError(f"Unexpected status {probe.status_code} from digest probe")

        header_value = probe.headers.get("WWW-Authenticate")
        if not header_value:
            raise MissingAuthHeader()

        challenge = parse_challenge(header_value)
        logger.debug(
            f"[DIGEST] Challenge realm={challenge.realm} nonce={challenge.nonce[:16]}... "
            f"qop={challenge.qop or 'none'}"
        )

        authorization = build_authorization_header(
            self.username, self.password, challenge, "GET", self.probe_path
        )
        answer = await self.transport.request("GET", self.probe_path, headers={"Authorization": authorization})

        if answer.status_code == 401:
            logger.error("[DIGEST] Credentials rejected")
            raise AuthError("Digest credentials rejected", code=401)
        if not answer.ok:
            raise TransportError(f"Unexpected status {answer.status_code} from authenticated digest request")

        self._set_state(DigestState.AUTHENTICATED, "digest accepted")
        return True
