"""Client for the authenticated, encrypted RPC2 interface of network video recorders."""

from .errors import (
    AuthError,
    CryptoError,
    DecodeError,
    NVRError,
    PreconditionError,
    RemoteError,
    RPCError,
    TransportError,
)
from .service import AuthenticationResult, AuthResult, DualProtocolService, RPCService

__all__ = [
    'RPCService',
    'DualProtocolService',
    'AuthResult',
    'AuthenticationResult',
    'NVRError',
    'TransportError',
    'RPCError',
    'RemoteError',
    'DecodeError',
    'PreconditionError',
    'AuthError',
    'CryptoError',
]
