# nvr_rpc/commands/system.py
import logging
from typing import Any, Dict

from nvr_rpc.errors import DecodeError
from nvr_rpc.models import MagicBoxInfo, SystemInfo, SystemTime
from nvr_rpc.protocol.constants import RPCMethod
from nvr_rpc.rpc_client import RPCClient

logger = logging.getLogger(__name__)


async def _fetch_object(client: RPCClient, method: str, what: str) -> Dict[str, Any]:
    response = await client.send(method)
    # Some firmwares answer in "params" with result=true.
    data = response.payload if isinstance(response.payload, dict) else response.params
    if not isinstance(data, dict):
        raise DecodeError(f"No {what} received")
    return data


class SystemCommands:
    def __init__(self, client: RPCClient):
        self.client = client

    async def get_system_info(self) -> SystemInfo:
        info = SystemInfo.from_json(await _fetch_object(self.client, RPCMethod.GET_SYSTEM_INFO, "system info"))
        logger.debug(f"[SYSTEM] Device: {info.device_type or 'Unknown'}, version: {info.software_version or 'Unknown'}")
        return info

    async def get_current_time(self) -> SystemTime:
        return SystemTime.from_json(await _fetch_object(self.client, RPCMethod.GET_CURRENT_TIME, "system time"))

    async def reboot(self) -> bool:
        response = await self.client.send(RPCMethod.REBOOT)
        if response.result is None or response.result is False:
            raise DecodeError("Failed to initiate reboot")
        logger.info("[SYSTEM] Reboot initiated")
        return True


class MagicBoxCommands:
    def __init__(self, client: RPCClient):
        self.client = client

    async def get_device_info(self) -> MagicBoxInfo:
        return MagicBoxInfo.from_json(await _fetch_object(self.client, RPCMethod.GET_DEVICE_INFO, "MagicBox device info"))

    async def get_software_version(self) -> Dict[str, Any]:
        return await _fetch_object(self.client, RPCMethod.GET_SOFTWARE_VERSION, "software version info")
