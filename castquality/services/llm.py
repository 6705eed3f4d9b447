import httpx
from castquality.config import Settings, settings as default_settings
from castquality.services.errors import ScorerError, ScorerNotConfiguredError
from castquality.services.logger import logger
from typing import Optional


class ScorerClient:
    """
    Thin client for the OpenAI-compatible chat completions endpoint.

    One POST per call and no retries: a failed call surfaces as ScorerError and
    the caller decides what "not analyzed" means.
    """

    def __init__(self, settings: Settings = default_settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.DEEPSEEK_API_KEY)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.DEEPSEEK_API_URL,
            timeout=self.settings.SCORER_TIMEOUT,
            transport=self._transport,
        )

    async def complete(self, system: str, prompt: str, max_tokens: Optional[int] = None) -> str:
        """
        Sends a system instruction and a user prompt, returns the raw message content.
        """
        if not self.is_configured:
            raise ScorerNotConfiguredError()

        payload = {
            "model": self.settings.DEEPSEEK_MODEL,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": max_tokens or self.settings.SCORER_MAX_TOKENS,
            "temperature": self.settings.SCORER_TEMPERATURE,
        }
        headers = {"Authorization": f"Bearer {self.settings.DEEPSEEK_API_KEY}"}

        try:
            async with self._client() as client:
                response = await client.post("/chat/completions", json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise ScorerError(f"Scorer request failed: {e}") from e

        if response.status_code >= 300:
            logger.error(f"Scorer API error: {response.status_code} {response.text[:500]}")
            raise ScorerError(f"Scorer API returned {response.status_code}", status_code=response.status_code)

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ScorerError(f"No content in scorer response: {e}", status_code=response.status_code) from e

        if not content:
            raise ScorerError("No content in scorer response", status_code=response.status_code)
        return content

scorer_client = ScorerClient()
