"""
Language-model clients for workout generation.

Both clients share one contract: ``generate(system_prompt, user_prompt,
max_output_tokens)`` performs a single outbound request (SDK retries are
disabled) and returns an ``LMResult``. Exceptions never escape; a timeout and
a transport error look the same to the caller.
"""

import os
import threading

import anthropic
import openai

from ai_trainer.config import provider_settings


SUCCESS = "success"
EMPTY = "empty"
FAILURE = "failure"


class LMResult:
    """Tagged outcome of one LM call: success(text) | empty | failure(error)."""

    __slots__ = ("status", "text", "error")

    def __init__(self, status, text=None, error=None):
        self.status = status
        self.text = text
        self.error = error

    @classmethod
    def success(cls, text):
        return cls(SUCCESS, text=text)

    @classmethod
    def empty(cls):
        return cls(EMPTY)

    @classmethod
    def failure(cls, error):
        return cls(FAILURE, error=str(error))

    @property
    def ok(self):
        return self.status == SUCCESS

    def __repr__(self):
        if self.status == SUCCESS:
            return f"LMResult.success({len(self.text)} chars)"
        if self.status == FAILURE:
            return f"LMResult.failure({self.error!r})"
        return "LMResult.empty()"


def _text_or_empty(text):
    text = (text or "").strip()
    if not text:
        return LMResult.empty()
    return LMResult.success(text)


class ClaudeClient:
    """Anthropic Messages API client."""

    provider = "claude"

    def __init__(self, api_key, model, timeout=60):
        if not api_key:
            raise ValueError("Claude API key not configured")
        self.model = model
        self.client = anthropic.Anthropic(
            api_key=api_key,
            timeout=timeout,
            max_retries=0,
        )

    def generate(self, system_prompt, user_prompt, max_output_tokens):
        try:
            message = self.client.messages.create(
                model=self.model,
                max_tokens=max_output_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
            )
            text_blocks = [
                block.text
                for block in (message.content or [])
                if getattr(block, "type", None) == "text"
            ]
            if not text_blocks:
                print("  Claude response has no text content.")
                return LMResult.empty()
            return _text_or_empty(text_blocks[0])
        except Exception as exc:
            print(f"  Claude API call failed: {exc}")
            return LMResult.failure(exc)


class OpenAIClient:
    """OpenAI chat completions client, JSON response mode."""

    provider = "openai"

    def __init__(self, api_key, model, timeout=60):
        if not api_key:
            raise ValueError("OpenAI API key not configured")
        self.model = model
        self.client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout,
            max_retries=0,
        )

    def generate(self, system_prompt, user_prompt, max_output_tokens):
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                max_tokens=max_output_tokens,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
            if not completion.choices:
                return LMResult.empty()
            return _text_or_empty(completion.choices[0].message.content)
        except Exception as exc:
            print(f"  OpenAI API call failed: {exc}")
            return LMResult.failure(exc)


CLIENT_CLASSES = {
    "claude": ClaudeClient,
    "openai": OpenAIClient,
}


def create_llm_client(config, provider=None):
    """
    Build a client for the configured provider.

    Raises:
        ValueError: unknown provider or missing API key
    """
    name, settings = provider_settings(config, provider)
    api_key = os.getenv(settings.get("api_key_env") or "")
    return CLIENT_CLASSES[name](
        api_key=api_key,
        model=settings["model"],
        timeout=settings.get("timeout", 60),
    )


# ---------------------------------------------------------------------------
# Process-wide client handle
# ---------------------------------------------------------------------------
_clients = {}
_client_lock = threading.Lock()


def get_llm_client(config, provider=None):
    """
    Get or create the process-wide LM client for a provider.

    Each provider's client is constructed once on first use (guarded by a
    lock) and reused for the lifetime of the process. Call
    ``reset_llm_client`` to tear them down.
    """
    name, _ = provider_settings(config, provider)
    client = _clients.get(name)
    if client is None:
        with _client_lock:
            client = _clients.get(name)
            if client is None:
                client = create_llm_client(config, name)
                _clients[name] = client
    return client


def reset_llm_client():
    """Drop every process-wide client (config change, tests)."""
    with _client_lock:
        _clients.clear()
