import logging
import litellm
from typing import Optional, Dict, Any
import json

from billsync.config import settings

logger = logging.getLogger(__name__)

litellm.drop_params = True

PLACEHOLDER_KEY = "[TO_BE_CONFIGURED]"


class AIClient:

    def __init__(self):
        self.provider = settings.ai_provider
        self.model = self._get_model_string()

    def _get_model_string(self) -> str:
        model = settings.ai_model

        if self.provider in ("gemini", "openrouter", "ollama"):
            prefix = f"{self.provider}/"
            if not model.startswith(prefix):
                return f"{prefix}{model}"
        return model

    def _api_key(self) -> Optional[str]:
        if self.provider == "gemini":
            return settings.gemini_api_key
        elif self.provider == "openrouter":
            return settings.openrouter_api_key
        return None

    def _api_base(self) -> Optional[str]:
        if self.provider == "openrouter":
            return "https://openrouter.ai/api/v1"
        elif self.provider == "ollama":
            return settings.ai_base_url or "http://localhost:11434"
        return settings.ai_base_url

    @property
    def is_configured(self) -> bool:
        if self.provider == "ollama":
            return True
        key = self._api_key()
        return bool(key) and key != PLACEHOLDER_KEY

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.1,
        max_tokens: int = 1000,
        json_mode: bool = False
    ) -> str:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt}
        ]

        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        api_key = self._api_key()
        if api_key:
            kwargs["api_key"] = api_key
        api_base = self._api_base()
        if api_base:
            kwargs["api_base"] = api_base

        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await litellm.acompletion(**kwargs)
            return response.choices[0].message.content
        except Exception as e:
            logger.error(f"AI completion error: {e}")
            raise

    async def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.1,
        max_tokens: int = 1000
    ) -> Dict[str, Any]:
        response = await self.complete(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=True
        )

        cleaned = response.strip()
        if cleaned.startswith("```json"):
            cleaned = cleaned[7:]
        if cleaned.startswith("```"):
            cleaned = cleaned[3:]
        if cleaned.endswith("```"):
            cleaned = cleaned[:-3]

        return json.loads(cleaned.strip())


_ai_client: Optional[AIClient] = None

def get_ai_client() -> AIClient:
    global _ai_client
    if _ai_client is None:
        _ai_client = AIClient()
    return _ai_client
