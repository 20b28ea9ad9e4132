import os
import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from ai_trainer.config import DEFAULT_CONFIG
from ai_trainer.llm_client import (
    ClaudeClient,
    LMResult,
    OpenAIClient,
    get_llm_client,
    reset_llm_client,
)


def claude_message(*blocks):
    return SimpleNamespace(content=[SimpleNamespace(**block) for block in blocks])


def openai_completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class ClaudeClientTests(unittest.TestCase):
    def _client(self, sdk):
        with patch("ai_trainer.llm_client.anthropic.Anthropic", return_value=sdk) as factory:
            client = ClaudeClient(api_key="test-key", model="claude-test", timeout=30)
        factory.assert_called_once_with(api_key="test-key", timeout=30, max_retries=0)
        return client

    def test_returns_first_text_block(self):
        sdk = MagicMock()
        sdk.messages.create.return_value = claude_message(
            {"type": "thinking", "thinking": "..."},
            {"type": "text", "text": '  {"workouts": []}  '},
        )
        client = self._client(sdk)

        result = client.generate("system", "user", 1024)

        self.assertTrue(result.ok)
        self.assertEqual(result.text, '{"workouts": []}')
        kwargs = sdk.messages.create.call_args.kwargs
        self.assertEqual(kwargs["system"], "system")
        self.assertEqual(kwargs["max_tokens"], 1024)
        self.assertEqual(kwargs["messages"], [{"role": "user", "content": "user"}])

    def test_no_text_block_is_empty(self):
        sdk = MagicMock()
        sdk.messages.create.return_value = claude_message({"type": "tool_use", "name": "x"})

        result = self._client(sdk).generate("system", "user", 1024)
        self.assertEqual(result.status, "empty")
        self.assertFalse(result.ok)

    def test_exception_becomes_failure(self):
        sdk = MagicMock()
        sdk.messages.create.side_effect = TimeoutError("Request timed out")

        result = self._client(sdk).generate("system", "user", 1024)
        self.assertEqual(result.status, "failure")
        self.assertIn("timed out", result.error)

    def test_missing_api_key_is_rejected(self):
        with self.assertRaises(ValueError):
            ClaudeClient(api_key="", model="claude-test")


class OpenAIClientTests(unittest.TestCase):
    def _client(self, sdk):
        with patch("ai_trainer.llm_client.openai.OpenAI", return_value=sdk):
            return OpenAIClient(api_key="test-key", model="gpt-test")

    def test_requests_json_and_returns_content(self):
        sdk = MagicMock()
        sdk.chat.completions.create.return_value = openai_completion('{"workoutMuscles": []}')

        result = self._client(sdk).generate("system", "user", 512)

        self.assertTrue(result.ok)
        kwargs = sdk.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["response_format"], {"type": "json_object"})
        self.assertEqual(kwargs["messages"][0], {"role": "system", "content": "system"})
        self.assertEqual(kwargs["model"], "gpt-test")

    def test_blank_content_is_empty(self):
        sdk = MagicMock()
        sdk.chat.completions.create.return_value = openai_completion("   ")
        self.assertEqual(self._client(sdk).generate("s", "u", 10).status, "empty")

        sdk.chat.completions.create.return_value = openai_completion(None)
        self.assertEqual(self._client(sdk).generate("s", "u", 10).status, "empty")

    def test_transport_error_becomes_failure(self):
        sdk = MagicMock()
        sdk.chat.completions.create.side_effect = ConnectionError("connection reset")
        self.assertEqual(self._client(sdk).generate("s", "u", 10).status, "failure")


class ClientAccessorTests(unittest.TestCase):
    def setUp(self):
        reset_llm_client()

    def tearDown(self):
        reset_llm_client()

    def test_client_is_constructed_once_and_reused(self):
        with patch.dict(os.environ, {"OPENAI_API_KEY": "test-key"}), patch(
            "ai_trainer.llm_client.openai.OpenAI"
        ) as factory:
            first = get_llm_client(DEFAULT_CONFIG)
            second = get_llm_client(DEFAULT_CONFIG)

        self.assertIs(first, second)
        self.assertIsInstance(first, OpenAIClient)
        factory.assert_called_once()

    def test_provider_override_selects_claude(self):
        with patch.dict(os.environ, {"CLAUDE_API_KEY": "test-key"}), patch(
            "ai_trainer.llm_client.anthropic.Anthropic"
        ):
            client = get_llm_client(DEFAULT_CONFIG, provider="claude")
        self.assertIsInstance(client, ClaudeClient)

    def test_clients_are_cached_per_provider(self):
        env = {"OPENAI_API_KEY": "openai-key", "CLAUDE_API_KEY": "claude-key"}
        with patch.dict(os.environ, env), patch("ai_trainer.llm_client.openai.OpenAI"), patch(
            "ai_trainer.llm_client.anthropic.Anthropic"
        ):
            openai_client = get_llm_client(DEFAULT_CONFIG)
            claude_client = get_llm_client(DEFAULT_CONFIG, provider="claude")
            again = get_llm_client(DEFAULT_CONFIG, provider="openai")

        self.assertIsInstance(openai_client, OpenAIClient)
        self.assertIsInstance(claude_client, ClaudeClient)
        self.assertIs(again, openai_client)

    def test_missing_key_raises_and_leaves_no_handle(self):
        with patch.dict(os.environ, {"OPENAI_API_KEY": ""}):
            with self.assertRaises(ValueError):
                get_llm_client(DEFAULT_CONFIG)

        with patch.dict(os.environ, {"OPENAI_API_KEY": "test-key"}), patch(
            "ai_trainer.llm_client.openai.OpenAI"
        ):
            self.assertIsInstance(get_llm_client(DEFAULT_CONFIG), OpenAIClient)


class LMResultTests(unittest.TestCase):
    def test_only_success_is_ok(self):
        self.assertTrue(LMResult.success("x").ok)
        self.assertFalse(LMResult.empty().ok)
        self.assertFalse(LMResult.failure(RuntimeError("boom")).ok)


if __name__ == "__main__":
    unittest.main()
