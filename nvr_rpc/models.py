# nvr_rpc/models.py
"""
Typed records decoded from device JSON.

The device uses PascalCase keys ("DeviceInfo", "UniqueChannel", ...). Each
record keeps the raw object it was decoded from so it can be sent back
unchanged in an update call.
"""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from nvr_rpc.errors import DecodeError


def _expect_object(data: Any, context: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise DecodeError(f"Expected an object for {context}, got {type(data).__name__}")
    return data


def _get(data: Dict[str, Any], key: str, types, context: str, required: bool = False, default=None):
    value = data.get(key)
    if value is None:
        if required:
            raise DecodeError(f"Missing field {key!r} in {context}")
        return default
    # bool is an int subclass; do not accept it where a number is expected.
    if isinstance(value, bool) and bool not in (types if isinstance(types, tuple) else (types,)):
        raise DecodeError(f"Field {key!r} in {context} has unexpected type bool")
    if not isinstance(value, types):
        raise DecodeError(f"Field {key!r} in {context} has unexpected type {type(value).__name__}")
    return value


# ==============================================================================
# Cameras
# ==============================================================================

@dataclass
class VideoInput:
    enable: bool
    name: Optional[str] = None
    main_stream_url: Optional[str] = None
    extra_stream_url: Optional[str] = None
    service_type: Optional[str] = None
    buf_delay: Optional[int] = None

    @classmethod
    def from_json(cls, data: Any) -> "VideoInput":
        data = _expect_object(data, "VideoInput")
        ctx = "VideoInput"
        return cls(
            enable=_get(data, "Enable", bool, ctx, required=True),
            name=_get(data, "Name", str, ctx),
            main_stream_url=_get(data, "MainStreamUrl", str, ctx),
            extra_stream_url=_get(data, "ExtraStreamUrl", str, ctx),
            service_type=_get(data, "ServiceType", str, ctx),
            buf_delay=_get(data, "BufDelay", int, ctx),
        )


@dataclass
class DeviceInfo:
    address: str
    http_port: int
    https_port: int
    port: int
    enable: bool
    name: Optional[str] = None
    device_type: Optional[str] = None
    device_class: Optional[str] = None
    protocol_type: Optional[str] = None
    serial_no: Optional[str] = None
    mac: Optional[str] = None
    user_name: Optional[str] = None
    rtsp_port: Optional[int] = None
    encryption: Optional[int] = None
    video_input_channels: Optional[int] = None
    audio_input_channels: Optional[int] = None
    video_inputs: List[VideoInput] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_json(cls, data: Any) -> "DeviceInfo":
        data = _expect_object(data, "DeviceInfo")
        ctx = "DeviceInfo"
        return cls(
            address=_get(data, "Address", str, ctx, required=True),
            http_port=_get(data, "HttpPort", int, ctx, required=True),
            https_port=_get(data, "HttpsPort", int, ctx, required=True),
            port=_get(data, "Port", int, ctx, required=True),
            enable=_get(data, "Enable", bool, ctx, required=True),
            name=_get(data, "Name", str, ctx),
            device_type=_get(data, "DeviceType", str, ctx),
            device_class=_get(data, "DeviceClass", str, ctx),
            protocol_type=_get(data, "ProtocolType", str, ctx),
            serial_no=_get(data, "SerialNo", str, ctx),
            mac=_get(data, "Mac", str, ctx),
            user_name=_get(data, "UserName", str, ctx),
            rtsp_port=_get(data, "RtspPort", int, ctx),
            encryption=_get(data, "Encryption", int, ctx),
            video_input_channels=_get(data, "VideoInputChannels", int, ctx),
            audio_input_channels=_get(data, "AudioInputChannels", int, ctx),
            video_inputs=[VideoInput.from_json(v) for v in _get(data, "VideoInputs", list, ctx, default=[])],
            raw=dict(data),
        )


@dataclass
class NVRCamera:
    channel: int
    device_id: str
    device_info: DeviceInfo
    enable: bool
    type: str
    unique_channel: int
    video_stream: Optional[str] = None
    video_standard: Optional[str] = None
    show_status: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_json(cls, data: Any) -> "NVRCamera":
        data = _expect_object(data, "camera")
        ctx = "camera"
        return cls(
            channel=_get(data, "Channel", int, ctx, required=True),
            device_id=_get(data, "DeviceID", str, ctx, required=True),
            device_info=DeviceInfo.from_json(_get(data, "DeviceInfo", dict, ctx, required=True)),
            enable=_get(data, "Enable", bool, ctx, required=True),
            type=_get(data, "Type", str, ctx, required=True),
            unique_channel=_get(data, "UniqueChannel", int, ctx, required=True),
            video_stream=_get(data, "VideoStream", str, ctx),
            video_standard=_get(data, "VideoStandard", str, ctx),
            show_status=_get(data, "showStatus", str, ctx),
            raw=dict(data),
        )

    @property
    def name(self) -> str:
        return self.device_info.name or f"Camera {self.unique_channel + 1}"

    @property
    def control_id(self) -> str:
        return f"Channel{self.unique_channel}"

    def with_status(self, status: Optional[str]) -> "NVRCamera":
        return replace(self, show_status=status)

    def to_json(self) -> Dict[str, Any]:
        """Camera object in the device's wire form, for secSetCamera."""
        body = dict(self.raw)
        body.update({
            "Channel": self.channel,
            "DeviceID": self.device_id,
            "DeviceInfo": dict(self.device_info.raw),
            "Enable": self.enable,
            "Type": self.type,
            "UniqueChannel": self.unique_channel,
        })
        if self.video_stream is not None:
            body["VideoStream"] = self.video_stream
        if self.video_standard is not None:
            body["VideoStandard"] = self.video_standard
        if self.show_status is not None:
            body["showStatus"] = self.show_status
        return body


@dataclass(frozen=True)
class CameraState:
    channel: int
    connection_state: Optional[str] = None

    @classmethod
    def from_json(cls, data: Any) -> "CameraState":
        data = _expect_object(data, "camera state")
        return cls(
            channel=_get(data, "channel", int, "camera state", required=True),
            connection_state=_get(data, "connectionState", str, "camera state"),
        )


# ==============================================================================
# System / MagicBox
# ==============================================================================

@dataclass
class SystemInfo:
    device_class: Optional[str] = None
    device_type: Optional[str] = None
    device_model: Optional[str] = None
    hardware_version: Optional[str] = None
    software_version: Optional[str] = None
    build_date: Optional[str] = None
    serial_number: Optional[str] = None
    processor: Optional[str] = None

    @classmethod
    def from_json(cls, data: Any) -> "SystemInfo":
        data = _expect_object(data, "system info")
        ctx = "system info"
        return cls(
            device_class=_get(data, "DeviceClass", str, ctx),
            device_type=_get(data, "DeviceType", str, ctx),
            device_model=_get(data, "DeviceModel", str, ctx),
            hardware_version=_get(data, "HardwareVersion", str, ctx),
            software_version=_get(data, "SoftwareVersion", str, ctx),
            build_date=_get(data, "BuildDate", str, ctx),
            serial_number=_get(data, "SerialNo", str, ctx),
            processor=_get(data, "Processor", str, ctx),
        )


@dataclass
class SystemTime:
    current_time: Optional[str] = None
    time_zone: Optional[str] = None
    dst_enable: Optional[bool] = None

    @classmethod
    def from_json(cls, data: Any) -> "SystemTime":
        data = _expect_object(data, "system time")
        ctx = "system time"
        return cls(
            current_time=_get(data, "CurrentTime", str, ctx),
            time_zone=_get(data, "TimeZone", (str, int), ctx),
            dst_enable=_get(data, "DstEnable", bool, ctx),
        )


@dataclass
class MagicBoxInfo:
    device_model: Optional[str] = None
    serial_number: Optional[str] = None
    software_version: Optional[str] = None
    hardware_version: Optional[str] = None
    build_date: Optional[str] = None
    uptime: Optional[int] = None

    @classmethod
    def from_json(cls, data: Any) -> "MagicBoxInfo":
        data = _expect_object(data, "magicBox info")
        ctx = "magicBox info"
        return cls(
            device_model=_get(data, "DeviceModel", str, ctx),
            serial_number=_get(data, "SerialNo", str, ctx),
            software_version=_get(data, "SoftwareVersion", str, ctx),
            hardware_version=_get(data, "HardwareVersion", str, ctx),
            build_date=_get(data, "BuildDate", str, ctx),
            uptime=_get(data, "Uptime", int, ctx),
        )


# ==============================================================================
# Session / security
# ==============================================================================

@dataclass(frozen=True)
class EncryptInfo:
    asymmetric: str
    ciphers: Tuple[str, ...]
    public_key: str

    @classmethod
    def from_json(cls, data: Any) -> "EncryptInfo":
        data = _expect_object(data, "encrypt info")
        ctx = "encrypt info"
        ciphers = _get(data, "cipher", list, ctx, required=True)
        if not all(isinstance(c, str) for c in ciphers):
            raise DecodeError("Field 'cipher' in encrypt info must be a list of strings")
        return cls(
            asymmetric=_get(data, "asymmetric", str, ctx, required=True),
            ciphers=tuple(ciphers),
            public_key=_get(data, "pub", str, ctx, required=True),
        )


@dataclass(frozen=True)
class LoginChallenge:
    random: str
    realm: str
    encryption: str

    @classmethod
    def from_json(cls, data: Any) -> "LoginChallenge":
        data = _expect_object(data, "login challenge")
        ctx = "login challenge"
        return cls(
            random=_get(data, "random", str, ctx, required=True),
            realm=_get(data, "realm", str, ctx, required=True),
            encryption=_get(data, "encryption", str, ctx, required=True),
        )


@dataclass(frozen=True)
class LoginResult:
    session: str
    keep_alive_interval: Optional[int] = None

    @classmethod
    def from_json(cls, params: Any, session: Optional[str]) -> "LoginResult":
        if session is None:
            raise DecodeError("Session missing from login response")
        interval = None
        if isinstance(params, dict):
            interval = _get(params, "keepAliveInterval", int, "login result")
        return cls(session=session, keep_alive_interval=interval)
