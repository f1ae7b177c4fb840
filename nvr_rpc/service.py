# nvr_rpc/service.py
"""
Entry points for talking to one recorder.

RPCService owns the HTTP transport, the RPC session and the crypto store of
one device and exposes the command modules. DualProtocolService adds the CGI
digest authentication and runs both handshakes concurrently.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from nvr_rpc import config
from nvr_rpc.commands.camera import CameraCommands
from nvr_rpc.commands.config_manager import ConfigManagerCommands
from nvr_rpc.commands.security import SecurityCommands
from nvr_rpc.commands.system import MagicBoxCommands, SystemCommands
from nvr_rpc.crypto_config import CryptoNegotiationStore
from nvr_rpc.digest_auth import DigestAuthenticator
from nvr_rpc.errors import NVRError
from nvr_rpc.http_client import HttpTransport
from nvr_rpc.keepalive import KeepAliveManager
from nvr_rpc.models import LoginResult
from nvr_rpc.rpc_client import RPCClient
from nvr_rpc.rpc_login import RPCLogin

logger = logging.getLogger(__name__)


class RPCService:
    def __init__(self, base_url: str = config.DEFAULT_BASE_URL, timeout: float = config.HTTP_TIMEOUT,
                 transport: Optional[HttpTransport] = None):
        self.transport = transport or HttpTransport(base_url, timeout=timeout)
        self.crypto_store = CryptoNegotiationStore()
        self.client = RPCClient(self.transport, self.crypto_store)
        self.login = RPCLogin(self.client)

        self._camera: Optional[CameraCommands] = None
        self._system: Optional[SystemCommands] = None
        self._magic_box: Optional[MagicBoxCommands] = None
        self._config_manager: Optional[ConfigManagerCommands] = None
        self._security: Optional[SecurityCommands] = None

    @property
    def camera(self) -> CameraCommands:
        if self._camera is None:
            self._camera = CameraCommands(self.client)
        return self._camera

    @property
    def system(self) -> SystemCommands:
        if self._system is None:
            self._system = SystemCommands(self.client)
        return self._system

    @property
    def magic_box(self) -> MagicBoxCommands:
        if self._magic_box is None:
            self._magic_box = MagicBoxCommands(self.client)
        return self._magic_box

    @property
    def config_manager(self) -> ConfigManagerCommands:
        if self._config_manager is None:
            self._config_manager = ConfigManagerCommands(self.client)
        return self._config_manager

    @property
    def security(self) -> SecurityCommands:
        if self._security is None:
            self._security = SecurityCommands(self.client)
        return self._security

    async def authenticate(self, username: str, password: str, negotiate_crypto: bool = True) -> LoginResult:
        """Logs in and, by default, fetches the encryption info for encrypted calls."""
        result = await self.login.login(username, password)
        if negotiate_crypto:
            await self.security.get_encrypt_info()
        return result

    async def disconnect(self):
        await self.login.logout()

    def keep_alive_manager(self, interval_sec: Optional[float] = None) -> KeepAliveManager:
        """A keep-alive loop for this session. The caller starts and stops it."""
        return KeepAliveManager(self.login, interval_sec=interval_sec)

    @property
    def is_authenticated(self) -> bool:
        return self.client.has_active_session

    def close(self):
        self.transport.close()


@dataclass(frozen=True)
class AuthResult:
    protocol: str
    success: bool
    error: Optional[Exception] = None


@dataclass(frozen=True)
class AuthenticationResult:
    http_cgi: AuthResult
    rpc: AuthResult

    @property
    def both_successful(self) -> bool:
        return self.http_cgi.success and self.rpc.success


class DualProtocolService:
    """Authenticates the CGI (digest) and RPC2 interfaces of one device."""

    CGI = "HTTP CGI"
    RPC = "RPC"

    def __init__(self, base_url: str = config.DEFAULT_BASE_URL, timeout: float = config.HTTP_TIMEOUT,
                 transport: Optional[HttpTransport] = None):
        self.transport = transport or HttpTransport(base_url, timeout=timeout)
        self.rpc = RPCService(transport=self.transport)
        self.cgi: Optional[DigestAuthenticator] = None

    async def _run(self, name: str, coro) -> AuthResult:
        try:
            await coro
        except NVRError as e:
            logger.error(f"[AUTH] {name} authentication failed: {e}")
            return AuthResult(protocol=name, success=False, error=e)
        logger.info(f"[AUTH] {name} authentication succeeded")
        return AuthResult(protocol=name, success=True)

    async def authenticate(self, username: str, password: str) -> AuthenticationResult:
        self.cgi = DigestAuthenticator(self.transport, username, password)
        cgi_result, rpc_result = await asyncio.gather(
            self._run(self.CGI, self.cgi.authenticate()),
            self._run(self.RPC, self.rpc.authenticate(username, password)),
        )
        result = AuthenticationResult(http_cgi=cgi_result, rpc=rpc_result)
        logger.info(f"[AUTH] {self.authentication_status}")
        return result

    async def disconnect(self):
        if self.cgi is not None:
            self.cgi.reset()
        await self.rpc.disconnect()

    @property
    def is_cgi_authenticated(self) -> bool:
        return self.cgi is not None and self.cgi.is_authenticated

    @property
    def is_fully_authenticated(self) -> bool:
        return self.is_cgi_authenticated and self.rpc.is_authenticated

    @property
    def authentication_status(self) -> str:
        cgi = "✓" if self.is_cgi_authenticated else "✗"
        rpc = "✓" if self.rpc.is_authenticated else "✗"
        return f"CGI: {cgi}, RPC: {rpc}"
