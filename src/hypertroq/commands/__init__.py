"""CLI commands for hypertroq."""

from .coach import chat, generate
from .config_cmd import config
from .init import init
from .knowledge import knowledge
from .profile import profile
from .serve import serve
from .users import users
from .volume import volume

__all__ = [
    "chat",
    "config",
    "generate",
    "init",
    "knowledge",
    "profile",
    "serve",
    "users",
    "volume",
]
