# nvr_rpc/errors.py
"""Exception hierarchy for the NVR RPC client.

Every error raised by this package derives from :class:`NVRError`, so a
caller can tell "device unreachable" (:class:`TransportError`) from "wrong
credentials" (:class:`AuthError`) from "protocol error" (everything else).
"""
from typing import List, Optional


class NVRError(Exception):
    """Base class for all client errors."""


class TransportError(NVRError):
    """Network or HTTP level failure. The underlying exception is chained."""


# ------------------------------------------------------------------------------
# RPC errors
# ------------------------------------------------------------------------------

class RPCError(NVRError):
    """An RPC failure carrying a numeric code and a message."""

    def __init__(self, code: int, message: str):
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.message = message

    def __eq__(self, other):
        if not isinstance(other, RPCError):
            return NotImplemented
        return type(self) is type(other) and (self.code, self.message) == (other.code, other.message)

    def __hash__(self):
        return hash((type(self), self.code, self.message))


class RemoteError(RPCError):
    """Error object reported by the device. The remote code is preserved."""


class DecodeError(RPCError):
    """Malformed JSON or an unexpected response shape."""

    def __init__(self, message: str):
        super().__init__(-1, message)


class PreconditionError(RPCError):
    """A call was made without an active session or negotiated crypto."""

    def __init__(self, message: str):
        super().__init__(-1, message)


class AuthError(RPCError):
    """Credentials were rejected or the handshake could not be completed."""

    def __init__(self, message: str, code: int = -1):
        super().__init__(code, message)


class InvalidDigestHeader(AuthError):
    def __init__(self, header: str = ""):
        super().__init__(f"Invalid digest authentication header: {header!r}")
        self.header = header


class MissingAuthHeader(AuthError):
    def __init__(self):
        super().__init__("Missing WWW-Authenticate header in challenge response")


# ------------------------------------------------------------------------------
# Crypto errors
# ------------------------------------------------------------------------------

class CryptoError(NVRError):
    """Key parsing, cipher negotiation or block cipher failure."""


class InvalidPublicKey(CryptoError):
    def __init__(self, detail: str):
        super().__init__(f"Invalid RSA public key: {detail}")
        self.detail = detail


class NoCipherMatch(CryptoError):
    def __init__(self, available: List[str], server_ciphers: List[str]):
        super().__init__(f"No matching cipher. Client: {available}, Server: {server_ciphers}")
        self.available = available
        self.server_ciphers = server_ciphers


class RandomGenerationFailed(CryptoError):
    pass


class EncryptionFailed(CryptoError):
    pass


class DecryptionFailed(CryptoError):
    pass


class InvalidBase64(CryptoError):
    def __init__(self, detail: Optional[str] = None):
        super().__init__("Invalid base64 encoded string" + (f": {detail}" if detail else ""))


class InvalidKeySize(CryptoError):
    def __init__(self, expected: int, actual: int):
        super().__init__(f"Invalid key size. Expected: {expected} bytes, Got: {actual} bytes")
        self.expected = expected
        self.actual = actual
