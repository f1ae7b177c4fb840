"""RPC command modules. Each wraps a shared RPCClient."""

from .camera import CameraCommands
from .config_manager import ConfigManagerCommands
from .security import SecurityCommands
from .system import MagicBoxCommands, SystemCommands

__all__ = [
    'CameraCommands',
    'ConfigManagerCommands',
    'SecurityCommands',
    'SystemCommands',
    'MagicBoxCommands',
]
