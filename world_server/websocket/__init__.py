from .authority import ConnectedUser, SessionAuthority, load_authority
from .gateway import ConnectionGateway
from .manager import SessionRegistry

__all__ = [
    "ConnectedUser",
    "ConnectionGateway",
    "SessionAuthority",
    "SessionRegistry",
    "load_authority",
]
