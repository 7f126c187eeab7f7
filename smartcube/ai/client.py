"""
AI Provider Client
HTTP client for the hosted model providers used by AI-backed cubes.

Provider is picked from Config.AI_PROVIDER:
1. openrouter - OpenAI-compatible chat completions (text only)
2. azure      - Azure OpenAI deployments (text and DALL-E images)
3. google     - Generative Language API (text only)
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from ..core.config import Config
from ..core.errors import AIProviderError
from ..utils.logger import get_logger

logger = get_logger(__name__)

SUPPORTED_PROVIDERS = ("openrouter", "azure", "google")


@dataclass
class AIResponse:
    text: str
    model: str
    provider: str
    usage: Dict[str, int] = field(default_factory=dict)


@dataclass
class ImageResponse:
    url: str
    model: str
    provider: str


class AIProviderClient:
    """
    Thin requests-based client over the configured provider

    Every failure (missing credentials, transport error, non-2xx, malformed
    body) surfaces as AIProviderError.
    """

    OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"
    GOOGLE_URL = "https://generativelanguage.googleapis.com/v1/models/{model}:generateContent"
    AZURE_API_VERSION = "2024-02-15-preview"
    AZURE_IMAGE_DEPLOYMENT = "dall-e-3"
    GOOGLE_DEFAULT_MODEL = "gemini-pro"

    def __init__(
        self,
        provider: Optional[str] = None,
        request_timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.provider = (provider or Config.AI_PROVIDER).lower()
        if self.provider not in SUPPORTED_PROVIDERS:
            raise AIProviderError(f"Unsupported provider: {self.provider}")
        self.request_timeout = request_timeout or Config.AI_REQUEST_TIMEOUT
        self.session = session or requests.Session()
        logger.info(f"AIProviderClient initialized → {self.provider}")

    def generate_text(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = 2000,
        temperature: float = 0.7,
        model: Optional[str] = None,
    ) -> AIResponse:
        """
        Generate a completion for a single user prompt

        Args:
            prompt: User message
            system_prompt: Optional system message
            max_tokens: Completion token limit
            temperature: Sampling temperature
            model: Provider model override

        Returns:
            AIResponse with text, model, provider and token usage
        """
        if self.provider == "openrouter":
            return self._text_openrouter(prompt, system_prompt, max_tokens, temperature, model)
        if self.provider == "azure":
            return self._text_azure(prompt, system_prompt, max_tokens, temperature)
        return self._text_google(prompt, system_prompt, max_tokens, temperature, model)

    def generate_image(self, prompt: str, size: str = "1024x1024", model: Optional[str] = None) -> ImageResponse:
        """Generate a single image and return its URL (Azure only)"""
        if self.provider != "azure":
            raise AIProviderError(f"Image generation not supported by {self.provider}")

        endpoint, api_key = self._azure_credentials()
        deployment = model or self.AZURE_IMAGE_DEPLOYMENT
        data = self._post(
            f"{endpoint}/openai/deployments/{deployment}/images/generations",
            json={"prompt": prompt, "size": size, "n": 1},
            headers={"api-key": api_key},
            params={"api-version": self.AZURE_API_VERSION},
            label="Azure OpenAI",
        )
        try:
            url = data["data"][0]["url"]
        except (KeyError, IndexError, TypeError) as e:
            raise AIProviderError("Azure OpenAI returned no image") from e
        return ImageResponse(url=url, model=deployment, provider="azure")

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------

    @staticmethod
    def _chat_messages(prompt: str, system_prompt: Optional[str]) -> List[Dict[str, str]]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    @staticmethod
    def _chat_usage(data: Dict[str, Any]) -> Dict[str, int]:
        usage = data.get("usage") or {}
        return {
            "prompt_tokens": usage.get("prompt_tokens", 0),
            "completion_tokens": usage.get("completion_tokens", 0),
            "total_tokens": usage.get("total_tokens", 0),
        }

    @staticmethod
    def _chat_text(data: Dict[str, Any], label: str) -> str:
        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise AIProviderError(f"{label} returned an unexpected response") from e

    def _text_openrouter(self, prompt, system_prompt, max_tokens, temperature, model) -> AIResponse:
        if not Config.OPENROUTER_API_KEY:
            raise AIProviderError("OpenRouter API key not configured")

        payload = {
            "model": model or Config.OPENROUTER_MODEL,
            "messages": self._chat_messages(prompt, system_prompt),
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        data = self._post(
            self.OPENROUTER_URL,
            json=payload,
            headers={
                "Authorization": f"Bearer {Config.OPENROUTER_API_KEY}",
                "HTTP-Referer": Config.APP_URL,
            },
            label="OpenRouter",
        )
        return AIResponse(
            text=self._chat_text(data, "OpenRouter"),
            model=data.get("model", payload["model"]),
            provider="openrouter",
            usage=self._chat_usage(data),
        )

    def _azure_credentials(self):
        if not Config.AZURE_OPENAI_API_KEY or not Config.AZURE_OPENAI_ENDPOINT:
            raise AIProviderError("Azure OpenAI credentials not configured")
        return Config.AZURE_OPENAI_ENDPOINT.rstrip("/"), Config.AZURE_OPENAI_API_KEY

    def _text_azure(self, prompt, system_prompt, max_tokens, temperature) -> AIResponse:
        endpoint, api_key = self._azure_credentials()
        deployment = Config.AZURE_OPENAI_DEPLOYMENT
        if not deployment:
            raise AIProviderError("Azure OpenAI credentials not configured")

        data = self._post(
            f"{endpoint}/openai/deployments/{deployment}/chat/completions",
            json={
                "messages": self._chat_messages(prompt, system_prompt),
                "max_tokens": max_tokens,
                "temperature": temperature,
            },
            headers={"api-key": api_key},
            params={"api-version": self.AZURE_API_VERSION},
            label="Azure OpenAI",
        )
        return AIResponse(
            text=self._chat_text(data, "Azure OpenAI"),
            model=deployment,
            provider="azure",
            usage=self._chat_usage(data),
        )

    def _text_google(self, prompt, system_prompt, max_tokens, temperature, model) -> AIResponse:
        if not Config.GOOGLE_AI_API_KEY:
            raise AIProviderError("Google AI API key not configured")

        model = model or self.GOOGLE_DEFAULT_MODEL
        text = f"{system_prompt}\n\n{prompt}" if system_prompt else prompt
        data = self._post(
            self.GOOGLE_URL.format(model=model),
            json={
                "contents": [{"parts": [{"text": text}]}],
                "generationConfig": {"maxOutputTokens": max_tokens, "temperature": temperature},
            },
            params={"key": Config.GOOGLE_AI_API_KEY},
            label="Google AI",
        )
        try:
            result = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise AIProviderError("Google AI returned an unexpected response") from e

        usage = data.get("usageMetadata") or {}
        return AIResponse(
            text=result,
            model=model,
            provider="google",
            usage={
                "prompt_tokens": usage.get("promptTokenCount", 0),
                "completion_tokens": usage.get("candidatesTokenCount", 0),
                "total_tokens": usage.get("totalTokenCount", 0),
            },
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _post(
        self,
        url: str,
        json: Dict[str, Any],
        label: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        try:
            resp = self.session.post(
                url,
                json=json,
                headers={"Content-Type": "application/json", **(headers or {})},
                params=params,
                timeout=self.request_timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"{label} request timed out ({self.request_timeout}s)")
            raise AIProviderError(f"{label} request timed out ({self.request_timeout}s)") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"{label} unreachable: {e}")
            raise AIProviderError(f"{label} unreachable: {e}") from e

        if not resp.ok:
            logger.error(f"{label} HTTP error {resp.status_code}: {resp.text[:200]}")
            raise AIProviderError(f"{label} API error: {resp.text}", details={"status": resp.status_code})

        try:
            return resp.json()
        except ValueError as e:
            raise AIProviderError(f"{label} returned invalid JSON") from e

    def __repr__(self) -> str:
        return f"AIProviderClient(provider={self.provider})"
