# nvr_rpc/commands/camera.py
"""LogicDeviceManager calls: camera list, connection state, camera update."""
import asyncio
import logging
from typing import Any, Dict, Iterable, List, Mapping, Union

from nvr_rpc.errors import DecodeError, PreconditionError, RPCError
from nvr_rpc.models import CameraState, NVRCamera
from nvr_rpc.protocol.constants import RPCErrorCode, RPCMethod
from nvr_rpc.rpc_client import RPCClient

logger = logging.getLogger(__name__)


def _camera_objects(decrypted: Any) -> List[Dict[str, Any]]:
    # Reply to the getCameraAll batch: [{"params": {"camera": [...]}}, ...]
    if not isinstance(decrypted, list) or not decrypted:
        raise DecodeError("No camera data received from RPC")
    first = decrypted[0]
    params = first.get("params") if isinstance(first, dict) else None
    cameras = params.get("camera") if isinstance(params, dict) else None
    if not isinstance(cameras, list):
        raise DecodeError("Camera reply has no params.camera list")
    return cameras


def merge_camera_states(raw_cameras: Iterable[Any], states: Iterable[CameraState]) -> List[NVRCamera]:
    """
    Decodes cameras and attaches each one's connection state by unique channel.

    Entries without a DeviceInfo object are unconfigured slots and are dropped.
    """
    state_by_channel = {s.channel: s.connection_state for s in states}
    cameras = []
    for raw in raw_cameras:
        if not isinstance(raw, dict) or raw.get("DeviceInfo") is None:
            logger.debug(f"[CAMERA] Skipping entry without DeviceInfo: {raw!r:.80}")
            continue
        camera = NVRCamera.from_json(raw)
        if camera.unique_channel in state_by_channel:
            camera = camera.with_status(state_by_channel[camera.unique_channel])
        cameras.append(camera)
    return cameras


class CameraCommands:
    def __init__(self, client: RPCClient):
        self.client = client

    async def get_camera_state(self) -> List[CameraState]:
        response = await self.client.send(RPCMethod.GET_CAMERA_STATE, {"uniqueChannels": [-1]})
        params = response.params
        if not isinstance(params, dict) or not isinstance(params.get("states"), list):
            raise DecodeError("Camera state reply has no params.states list")
        return [CameraState.from_json(s) for s in params["states"]]

    async def get_all_cameras(self) -> List[NVRCamera]:
        session = self.client.session_id
        if session is None:
            raise PreconditionError("No valid session ID available for camera request")

        batch = [{"method": RPCMethod.GET_CAMERA_ALL, "params": None, "id": 1, "session": session}]
        raw_cameras, states = await asyncio.gather(
            self.client.send_encrypted(RPCMethod.GET_CAMERA_ALL, batch, decoder=_camera_objects),
            self.get_camera_state(),
        )

        cameras = merge_camera_states(raw_cameras, states)
        logger.info(f"[CAMERA] {len(cameras)} cameras ({len(raw_cameras) - len(cameras)} empty slots)")
        return cameras

    async def sec_set_camera(self, cameras: List[Union[NVRCamera, Mapping[str, Any]]]) -> List[NVRCamera]:
        """
        Updates cameras, then re-fetches the full list.

        The update reply carries no camera data, so the returned list comes
        from a fresh get_all_cameras call.
        """
        payload = {"cameras": [c.to_json() if isinstance(c, NVRCamera) else dict(c) for c in cameras]}
        response = await self.client.send_encrypted_command(RPCMethod.SEC_SET_CAMERA, payload)
        if response.result is not True:
            raise RPCError(RPCErrorCode.LOCAL.value, "Camera update failed")

        logger.info(f"[CAMERA] Updated {len(payload['cameras'])} camera(s), refreshing list")
        return await self.get_all_cameras()
