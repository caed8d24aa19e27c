from housepoints.realtime.bus import EventBus
from housepoints.realtime.hub import BroadcastHub, Connection

__all__ = ["EventBus", "BroadcastHub", "Connection"]
