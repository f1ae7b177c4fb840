# nvr_rpc/commands/config_manager.py
from typing import Any, Dict, Optional

from nvr_rpc.errors import DecodeError
from nvr_rpc.protocol.constants import RPCMethod
from nvr_rpc.rpc_client import RPCClient


class ConfigManagerCommands:
    def __init__(self, client: RPCClient):
        self.client = client

    async def get_config(self, name: str, channel: Optional[int] = None) -> Any:
        """Returns the config table: an object, or a list for per-channel configs."""
        params: Dict[str, Any] = {"name": name}
        if channel is not None:
            params["channel"] = channel

        response = await self.client.send(RPCMethod.GET_CONFIG, params)
        if isinstance(response.params, dict) and "table" in response.params:
            return response.params["table"]
        if isinstance(response.payload, dict):
            return response.payload
        raise DecodeError(f"No config data received for {name}")

    async def set_config(self, name: str, table: Any, channel: Optional[int] = None) -> bool:
        params: Dict[str, Any] = {"name": name, "table": table}
        if channel is not None:
            params["channel"] = channel

        response = await self.client.send(RPCMethod.SET_CONFIG, params)
        return response.result is True
