# nvr_rpc/protocol/constants.py
from enum import IntEnum


class RPCErrorCode(IntEnum):
    # First-stage login: device asks for a challenge response
    LOGIN_CHALLENGE = 268632079
    UNAUTHORIZED = 401

    # Locally synthesized failures (decode, precondition)
    LOCAL = -1


# Error codes that mark a login challenge rather than a failure
CHALLENGE_CODES = (RPCErrorCode.LOGIN_CHALLENGE, RPCErrorCode.UNAUTHORIZED)


class RPCMethod:
    # Session
    LOGIN = "global.login"
    LOGOUT = "global.logout"
    KEEPALIVE = "global.keepAlive"

    # Encrypted transport
    MULTI_SEC = "system.multiSec"
    GET_ENCRYPT_INFO = "Security.getEncryptInfo"

    # Cameras
    GET_CAMERA_ALL = "LogicDeviceManager.getCameraAll"
    GET_CAMERA_STATE = "LogicDeviceManager.getCameraState"
    SEC_SET_CAMERA = "LogicDeviceManager.secSetCamera"

    # System
    GET_SYSTEM_INFO = "system.getSystemInfo"
    GET_CURRENT_TIME = "system.getCurrentTime"
    REBOOT = "system.reboot"

    # MagicBox
    GET_DEVICE_INFO = "magicBox.getDeviceInfo"
    GET_SOFTWARE_VERSION = "magicBox.getSoftwareVersion"

    # Config manager
    GET_CONFIG = "configManager.getConfig"
    SET_CONFIG = "configManager.setConfig"


class LoginEncryption:
    """Password hashing schemes announced in the login challenge."""
    DEFAULT = "Default"
    BASIC = "Basic"
