# nvr_rpc/rpc_login.py
"""
Two-stage RPC2 login.

Stage 1: global.login with an empty password. The device answers with a
challenge error (268632079 or 401) carrying {random, realm, encryption}.
Stage 2: global.login with the password hashed according to `encryption`.

A device may also accept stage 1 directly; that is treated as success.
A challenge on stage 2 is final and is not retried.
"""
import base64
import hashlib
import logging
from typing import Optional

from nvr_rpc import config
from nvr_rpc.errors import AuthError, DecodeError, NVRError, RemoteError
from nvr_rpc.models import LoginChallenge, LoginResult
from nvr_rpc.protocol.constants import LoginEncryption, RPCMethod
from nvr_rpc.protocol.envelope import RPCResponse
from nvr_rpc.rpc_client import RPCClient

logger = logging.getLogger(__name__)


def _md5_upper(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest().upper()


def hash_password(username: str, password: str, challenge: LoginChallenge) -> str:
    """Password field of the second login, by the scheme the device asked for."""
    if challenge.encryption == LoginEncryption.DEFAULT:
        realm_hash = _md5_upper(f"{username}:{challenge.realm}:{password}")
        return _md5_upper(f"{username}:{challenge.random}:{realm_hash}")
    if challenge.encryption == LoginEncryption.BASIC:
        return base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    logger.warning(f"[LOGIN] Unknown password encryption {challenge.encryption!r}, sending as-is")
    return password


class RPCLogin:
    def __init__(self, client: RPCClient):
        self.client = client
        self.keep_alive_interval = config.KEEPALIVE_INTERVAL

    async def login(self, username: str, password: str) -> LoginResult:
        # A new login always starts from a clean session.
        self.client.clear_session()
        logger.info(f"[LOGIN] Starting RPC login for user {username!r}")

        first = await self.client.send(
            RPCMethod.LOGIN,
            {
                "userName": username,
                "password": "",
                "clientType": config.LOGIN_CLIENT_TYPE,
                "loginType": config.LOGIN_TYPE,
            },
            use_login_endpoint=True,
            include_session=False,
            allow_challenge=True,
        )

        if not first.is_challenge:
            if first.result is True and first.session is not None:
                logger.info("[LOGIN] Device accepted login without challenge")
                return self._complete(first)
            raise AuthError("First login returned neither a challenge nor a session")

        challenge = self._parse_challenge(first)
        self.client.mark_challenge_sent()
        logger.info(f"[LOGIN] Challenge received (code {first.error.code}, encryption={challenge.encryption})")

        second = await self._second_login(username, password, challenge, first.session)
        return self._complete(second)

    def _parse_challenge(self, response: RPCResponse) -> LoginChallenge:
        params = response.params if isinstance(response.params, dict) else None
        source = params if params and "random" in params else response.error.data
        try:
            return LoginChallenge.from_json(source)
        except DecodeError as e:
            raise AuthError(f"Invalid login challenge: {e.message}") from e

    async def _second_login(self, username: str, password: str, challenge: LoginChallenge,
                            provisional_session: Optional[str]) -> RPCResponse:
        params = {
            "userName": username,
            "password": hash_password(username, password, challenge),
            "clientType": config.LOGIN_CLIENT_TYPE,
            "authorityType": challenge.encryption,
            "passwordType": challenge.encryption,
        }
        try:
            response = await self.client.send(
                RPCMethod.LOGIN,
                params,
                use_login_endpoint=True,
                include_session=False,
                session=provisional_session,
                allow_challenge=True,
            )
        except RemoteError as e:
            raise AuthError(f"Authentication failed: {e.message}", code=e.code) from e

        if response.is_challenge:
            logger.error(f"[LOGIN] Second challenge (code {response.error.code}), credentials rejected")
            raise AuthError("Authentication failed: credentials rejected", code=response.error.code)
        if response.result is not True:
            raise AuthError(f"Authentication failed - server returned result: {response.result!r}")

        if response.session is None and provisional_session is not None:
            response.session = provisional_session
        return response

    def _complete(self, response: RPCResponse) -> LoginResult:
        result = LoginResult.from_json(response.params, response.session)
        if result.keep_alive_interval:
            self.keep_alive_interval = result.keep_alive_interval
        self.client.set_session(result.session)
        logger.info(f"[LOGIN] ✅ Logged in (keep-alive every {self.keep_alive_interval}s)")
        return result

    async def logout(self):
        """Best effort: the local session is cleared even if the device call fails."""
        if self.client.has_active_session:
            try:
                await self.client.send(RPCMethod.LOGOUT)
                logger.info("[LOGIN] Logged out")
            except NVRError as e:
                logger.warning(f"[LOGIN] Logout call failed, clearing session anyway: {e}")
        self.client.clear_session()
        self.client.crypto_store.reset()

    async def keep_alive(self, timeout: int = config.KEEPALIVE_TIMEOUT) -> bool:
        response = await self.client.send(RPCMethod.KEEPALIVE, {"timeout": timeout, "active": True})
        return response.succeeded
