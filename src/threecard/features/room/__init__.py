"""Room feature: per-room orchestration of the table and its AI seats."""

from .schemas import DecisionPayload, EventPayload, HandResultPayload, ShowdownPayload
from .service import RoomConfig, RoomManager, RoomState

__all__ = [
    "DecisionPayload",
    "EventPayload",
    "HandResultPayload",
    "RoomConfig",
    "RoomManager",
    "RoomState",
    "ShowdownPayload",
]
