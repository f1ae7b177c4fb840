# nvr_rpc/commands/security.py
import logging

from nvr_rpc.errors import DecodeError
from nvr_rpc.models import EncryptInfo
from nvr_rpc.protocol.constants import RPCMethod
from nvr_rpc.rpc_client import RPCClient

logger = logging.getLogger(__name__)


class SecurityCommands:
    def __init__(self, client: RPCClient):
        self.client = client

    async def get_encrypt_info(self) -> EncryptInfo:
        """
        Fetches the device's public key and ciphers and stores them in the
        client's crypto negotiation store. Must run before any encrypted call.
        """
        reply = await self.client.send_outside_cmd(RPCMethod.GET_ENCRYPT_INFO)
        if reply.get("params") is None:
            raise DecodeError("Security.getEncryptInfo returned no params")

        info = EncryptInfo.from_json(reply["params"])
        self.client.crypto_store.update(info.asymmetric, info.ciphers, info.public_key)
        logger.info(f"[CRYPTO] Encryption info: {info.asymmetric}, ciphers {', '.join(info.ciphers)}")
        return info
