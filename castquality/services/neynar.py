import httpx
import logging
from typing import Any, Dict, Optional
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
from castquality.config import Settings, settings as default_settings
from castquality.models.casts import Cast
from castquality.services.errors import ContentSourceError

logger = logging.getLogger(__name__)


class NeynarContentSource:
    """Looks up casts the local stores have never seen."""

    def __init__(self, settings: Settings = default_settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            f"Neynar lookup failed, retrying in {retry_state.next_action.sleep} seconds... (attempt {retry_state.attempt_number})"
        )
    )
    async def _get_conversation(self, cast_hash: str) -> Dict[str, Any]:
        async with httpx.AsyncClient(
            base_url=self.settings.NEYNAR_API_URL,
            timeout=self.settings.NEYNAR_TIMEOUT,
            transport=self._transport,
        ) as client:
            resp = await client.get(
                "/v2/farcaster/cast/conversation",
                params={
                    "identifier": cast_hash,
                    "type": "hash",
                    "reply_depth": 0,
                    "include_chronological_parent_casts": "false",
                },
                headers={"x-api-key": self.settings.NEYNAR_API_KEY or "", "accept": "application/json"},
            )
            if resp.status_code == 404:
                return {}
            resp.raise_for_status()
            return resp.json()

    async def lookup_cast(self, cast_hash: str) -> Optional[Cast]:
        """Returns the cast with its parent linkage, or None if it does not exist."""
        if not self.settings.NEYNAR_API_KEY:
            raise ContentSourceError("NEYNAR_API_KEY not configured", cast_hash=cast_hash)
        try:
            data = await self._get_conversation(cast_hash)
        except (httpx.HTTPError, ValueError) as e:
            raise ContentSourceError(f"Neynar lookup for {cast_hash} failed: {e}", cast_hash=cast_hash) from e

        cast_data = (data.get("conversation") or {}).get("cast")
        if not cast_data:
            logger.info(f"Cast {cast_hash} not found on Neynar")
            return None
        return Cast.from_data(cast_data)

content_source = NeynarContentSource()
