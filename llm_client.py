"""
LLM Client — sends a conversation history to a chat-completion API and
returns the reply text.

Supported providers:
- openai: OpenAI API
- azure_openai: Azure OpenAI Service (LLM_API_BASE_URL must be set)
- anthropic: Anthropic Messages API
"""

import time
import requests
from typing import Dict, List, Optional, Any

from models import Message, Role
from chat_logger import get_logger, mask_secret
from app_config import (
    LLM_PROVIDER,
    LLM_MODEL,
    LLM_API_KEY,
    LLM_API_BASE_URL,
    LLM_TEMPERATURE,
    LLM_MAX_TOKENS,
    LLM_TIMEOUT_SECONDS,
)

logger = get_logger("concierge")

DEFAULT_API_URLS = {
    "openai": "https://api.openai.com/v1/chat/completions",
    "anthropic": "https://api.anthropic.com/v1/messages",
}

ANTHROPIC_VERSION = "2023-06-01"


class LLMClientError(Exception):
    """The model could not produce a reply (transport, HTTP or response-shape failure)."""


class LLMClient:
    """
    Abstraction over LLM providers — configurable via environment variables
    or constructor arguments.
    """

    def __init__(
        self,
        provider: str = LLM_PROVIDER,
        model: str = LLM_MODEL,
        api_key: str = LLM_API_KEY,
        api_url: str = LLM_API_BASE_URL,
        temperature: float = LLM_TEMPERATURE,
        max_tokens: int = LLM_MAX_TOKENS,
        timeout: float = LLM_TIMEOUT_SECONDS,
    ):
        self.provider = provider.lower()
        self.model = model
        self.api_key = api_key
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

        if self.provider in DEFAULT_API_URLS:
            self.api_url = api_url or DEFAULT_API_URLS[self.provider]
        elif self.provider == "azure_openai":
            self.api_url = api_url  # Must be provided for Azure
        else:
            raise ValueError(f"Unsupported LLM provider: {self.provider}")

    def generate(self, history: List[Message]) -> str:
        """
        Send the conversation to the configured provider.

        Args:
            history: Messages in conversation order (system messages included)

        Returns:
            The assistant's reply text

        Raises:
            LLMClientError: If the API call fails or the response is malformed
        """
        if not self.api_url:
            raise LLMClientError(f"No API URL configured for provider '{self.provider}'")

        start_time = time.time()
        try:
            if self.provider == "anthropic":
                content = self._anthropic_completion(history)
            else:
                content = self._openai_style_completion(history)
        except requests.exceptions.RequestException as e:
            detail = _error_detail(e)
            logger.error(
                f"LLM API call failed | provider={self.provider} | model={self.model} | "
                f"api_key={mask_secret(self.api_key)} | error={detail}"
            )
            raise LLMClientError(f"LLM API error: {detail}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(f"LLM API returned an unexpected payload | provider={self.provider} | error={e}")
            raise LLMClientError(f"Unexpected LLM response: {e}") from e

        latency_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"LLM API call | provider={self.provider} | model={self.model} | "
            f"messages={len(history)} | latency_ms={latency_ms}"
        )
        return content

    def _openai_style_completion(self, history: List[Message]) -> str:
        """OpenAI-compatible API call (works for OpenAI and Azure OpenAI)."""
        headers = {"Content-Type": "application/json"}
        if self.provider == "azure_openai":
            headers["api-key"] = self.api_key
        else:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload = {
            "model": self.model,
            "messages": [m.for_model() for m in history],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

        data = self._post(headers, payload)
        return data["choices"][0]["message"]["content"]

    def _anthropic_completion(self, history: List[Message]) -> str:
        """Anthropic API call. System messages move to the top-level `system` field."""
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

        system_prompt = "\n\n".join(m.content for m in history if m.role == Role.SYSTEM)
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [m.for_model() for m in history if m.role != Role.SYSTEM],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if system_prompt:
            payload["system"] = system_prompt

        data = self._post(headers, payload)
        return "".join(
            part.get("text", "") for part in data["content"] if part.get("type", "text") == "text"
        )

    def _post(self, headers: dict, payload: dict) -> dict:
        response = requests.post(
            self.api_url,
            headers=headers,
            json=payload,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()


def _error_detail(error: requests.exceptions.RequestException) -> str:
    """Prefer the provider's own error message over the generic HTTP one."""
    response: Optional[requests.Response] = getattr(error, "response", None)
    if response is not None:
        try:
            body = response.json()
        except ValueError:
            return str(error)
        if isinstance(body, dict):
            err = body.get("error")
            if isinstance(err, dict) and err.get("message"):
                return err["message"]
    return str(error)
