from .discord import register_discord_commands
from .utils import get_version, load_json_params, raise_exit

__all__ = [
    "get_version",
    "load_json_params",
    "raise_exit",
    "register_discord_commands",
]
