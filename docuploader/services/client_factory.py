"""Creates one store client per agent."""
import logging
from typing import Optional

from ..errors import StoreError
from .api_client import ClientSettings, StoreClient

logger = logging.getLogger(__name__)


class ClientFactory:
    """
    Builds connected store clients.

    ``create()`` never raises on connection problems: it logs them and
    returns None so the calling agent can step aside.
    """

    def __init__(self, settings: ClientSettings, transport=None):
        self._settings = settings
        self._transport = transport

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    async def create(self) -> Optional[StoreClient]:
        if not self._settings.service_url:
            logger.error("Store service URL is not configured")
            return None

        client = StoreClient(self._settings, transport=self._transport)
        await client.open()
        try:
            await client.ping()
        except StoreError as e:
            logger.error(f"Could not connect to {self._settings.service_url}: {e}")
            await client.aclose()
            return None
        return client
