"""Chat-completions client used to summarise forwarded messages."""

from __future__ import annotations

from typing import Any

from pyimbridge._transport import Transport
from pyimbridge.config import CompletionSettings
from pyimbridge.exceptions import UpstreamAPIError

DEFAULT_SYSTEM_PROMPT = (
    "You are a concise summarisation assistant. Summarise the user's content "
    "in at most 20 characters. Reply with the summary only."
)


class CompletionClient:
    def __init__(self, settings: CompletionSettings, transport: Transport) -> None:
        self._settings = settings
        self._transport = transport

    async def summarize(
        self,
        text: str,
        *,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        max_tokens: int = 100,
        temperature: float = 0.3,
    ) -> str:
        """Return the first completion choice for *text*, stripped."""
        body: dict[str, Any] = {
            "model": self._settings.model_id,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": text},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        response = await self._transport.request_json(
            "POST",
            self._settings.api_url,
            json_body=body,
            headers={"authorization": f"Bearer {self._settings.api_key}"},
        )
        choices = response.get("choices")
        if not isinstance(choices, list) or not choices:
            raise UpstreamAPIError("Completion response has no choices", endpoint=self._settings.api_url)
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise UpstreamAPIError("Completion choice has no text content", endpoint=self._settings.api_url)
        return content.strip()
