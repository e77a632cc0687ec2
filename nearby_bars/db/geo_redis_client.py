"""Redis client with coordinate range indexes."""
import json
import logging
from typing import Any, Optional

import redis

logger = logging.getLogger(__name__)


class GeoRedisClient:
    """Redis wrapper storing JSON documents with latitude/longitude range indexes.

    Each coordinate axis is a sorted set scored by degrees, which gives
    index-friendly range queries on "latitude" and "longitude" columns.
    """

    def __init__(self, client: redis.Redis):
        """Initialize Redis client wrapper.

        Args:
            client: Redis client created with decode_responses=True
        """
        self.client = client

    @classmethod
    def from_settings(
        cls, host: str = "redis", port: int = 6379, password: str = "", db: int = 0
    ) -> "GeoRedisClient":
        """Connect to Redis and verify the connection.

        Raises:
            redis.ConnectionError if the server is unreachable
        """
        client = redis.Redis(
            host=host,
            port=port,
            password=password if password else None,
            db=db,
            decode_responses=True,
        )
        wrapper = cls(client)
        try:
            wrapper.ping()
            logger.info(f"Connected to Redis at {host}:{port}")
        except redis.ConnectionError as e:
            logger.error(f"Could not connect to Redis: {e}")
            raise
        return wrapper

    def mget(self, keys: list[str]) -> list[Optional[str]]:
        """Get values for many keys in one round trip (None for missing keys)."""
        if not keys:
            return []
        return self.client.mget(keys)

    def set_documents_with_coordinates(
        self,
        lat_key: str,
        lon_key: str,
        documents: list[tuple[str, float, float, Any]],
    ) -> None:
        """Store JSON documents and index their coordinates atomically.

        Each document is ``(member_key, lat, lon, data)``. Existing members
        are overwritten, both their JSON and their index scores.

        Args:
            lat_key: Sorted set scored by latitude
            lon_key: Sorted set scored by longitude
            documents: Documents to store
        """
        if not documents:
            return

        pipe = self.client.pipeline(transaction=True)
        for member_key, lat, lon, data in documents:
            if hasattr(data, "model_dump_json"):
                json_data = data.model_dump_json(by_alias=True)
            else:
                json_data = json.dumps(data)

            pipe.set(member_key, json_data)
            pipe.zadd(lat_key, {member_key: lat})
            pipe.zadd(lon_key, {member_key: lon})
        pipe.execute()

        logger.debug(f"Stored {len(documents)} documents with coordinate indexes")

    def get_documents_in_box(
        self,
        lat_key: str,
        lon_key: str,
        min_lat: float,
        max_lat: float,
        min_lon: float,
        max_lon: float,
    ) -> list[str]:
        """Return JSON documents whose coordinates fall inside the rectangle.

        Args:
            lat_key: Sorted set scored by latitude
            lon_key: Sorted set scored by longitude
            min_lat, max_lat: Inclusive latitude range
            min_lon, max_lon: Inclusive longitude range

        Returns:
            List of JSON strings for matching documents
        """
        in_lat_range = set(self.client.zrangebyscore(lat_key, min_lat, max_lat))
        if not in_lat_range:
            return []

        members = [
            member
            for member in self.client.zrangebyscore(lon_key, min_lon, max_lon)
            if member in in_lat_range
        ]
        logger.debug(f"Box query matched {len(members)} members")

        return [data for data in self.mget(members) if data]

    def ping(self) -> bool:
        """Check connectivity to Redis.

        Raises:
            redis.ConnectionError if connection fails
        """
        return self.client.ping()

    def close(self) -> None:
        self.client.close()
