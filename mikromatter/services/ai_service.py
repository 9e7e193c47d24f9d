"""Client for an OpenAI-compatible chat-completions endpoint.

Used for post-idea generation and proofreading. Output is passed straight
back to the caller and never stored or indexed.
"""
import json
import logging

import httpx

from mikromatter.core.config import settings
from mikromatter.core.exceptions import TextGenerationError
from mikromatter.schemas.ai import ProofreadResponse, Suggestion

logger = logging.getLogger(__name__)

IDEAS_SYSTEM = (
    "You are a creative writing assistant for a micro-blogging platform. "
    "Generate engaging post ideas that encourage discussion and interaction. "
    'Respond with JSON in this format: { "ideas": ["idea1", "idea2", ...] }'
)

PROOFREAD_SYSTEM = (
    "You are a professional proofreader and editor. Check for grammar, spelling, "
    'clarity, and style improvements. Return JSON with: { "correctedText": "the improved version", '
    '"suggestions": [{"original": "text", "suggestion": "improved text", "reason": "why"}] }'
)

IDEA_COUNT = 5


def ideas_prompt(topic: str | None) -> str:
    if topic and topic.strip():
        return (
            f'Generate {IDEA_COUNT} creative post ideas about "{topic.strip()}" for a micro-blogging platform. '
            "Each idea should be engaging and thought-provoking. Return only a JSON array of strings."
        )
    return (
        f"Generate {IDEA_COUNT} creative post ideas for a micro-blogging platform. "
        "Each idea should be engaging, diverse, and thought-provoking. Include topics like technology, "
        "productivity, life lessons, hot takes, or interesting questions. Return only a JSON array of strings."
    )


class TextGenerationClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.base_url = (base_url or settings.OPENAI_BASE_URL).rstrip("/")
        self.model = model or settings.OPENAI_MODEL
        self.timeout = timeout or settings.AI_TIMEOUT_SECONDS
        self._transport = transport

    async def complete_json(self, system: str, user: str) -> dict:
        if not self.api_key:
            raise TextGenerationError("Text generation is not configured")
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "response_format": {"type": "json_object"},
        }
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={"Authorization": f"Bearer {self.api_key}"},
            ) as client:
                r = await client.post("/chat/completions", json=payload)
                r.raise_for_status()
                data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TextGenerationError(f"Text generation request failed: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"] or "{}"
            result = json.loads(content)
        except (KeyError, IndexError, TypeError, json.JSONDecodeError) as e:
            raise TextGenerationError("Malformed completion response") from e
        if not isinstance(result, dict):
            raise TextGenerationError("Completion was not a JSON object")
        return result

    async def generate_post_ideas(self, topic: str | None = None) -> list[str]:
        result = await self.complete_json(IDEAS_SYSTEM, ideas_prompt(topic))
        ideas = result.get("ideas") or []
        if not isinstance(ideas, list):
            raise TextGenerationError("Completion ideas were not a list")
        return [idea for idea in ideas if isinstance(idea, str) and idea.strip()]

    async def proofread(self, content: str) -> ProofreadResponse:
        result = await self.complete_json(PROOFREAD_SYSTEM, f"Proofread and improve this post:\n\n{content}")
        suggestions = []
        for item in result.get("suggestions") or []:
            if not isinstance(item, dict) or "original" not in item or "suggestion" not in item:
                logger.debug("Skipping malformed proofreading suggestion: %r", item)
                continue
            suggestions.append(
                Suggestion(
                    original=str(item["original"]),
                    suggestion=str(item["suggestion"]),
                    reason=str(item.get("reason") or ""),
                )
            )
        corrected = result.get("correctedText") or result.get("corrected_text") or content
        return ProofreadResponse(corrected_text=corrected, suggestions=suggestions)


_client: TextGenerationClient | None = None


def get_text_client() -> TextGenerationClient:
    global _client
    if _client is None:
        _client = TextGenerationClient()
    return _client
