from housepoints.client.api import PointsApiClient, PointsApiError
from housepoints.client.cache import QueryCache
from housepoints.client.connection import LiveConnection, live_url
from housepoints.client.feed import LiveFeed
from housepoints.client.widgets import StandingsWidget

__all__ = [
    "PointsApiClient",
    "PointsApiError",
    "QueryCache",
    "LiveConnection",
    "LiveFeed",
    "StandingsWidget",
    "live_url",
]
