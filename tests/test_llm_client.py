import json
from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest
import requests

from talentmatch.core.config import settings
from talentmatch.core.errors import ParseError, ProviderFatalError, ProviderTransientError
from talentmatch.services.common.llm_client import (
    LLMClient,
    classify_provider_error,
    load_prompt,
    resolve_model,
)

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def status_error(cls, status, body=None):
    return cls("provider said no", response=httpx.Response(status, request=REQUEST), body=body)


def http_error(status):
    response = requests.Response()
    response.status_code = status
    return requests.HTTPError(f"{status} error", response=response)


class TestCoerceJson:
    def test_plain_object(self):
        assert LLMClient._coerce_json('{"a": 1}') == {"a": 1}

    def test_code_fences(self):
        assert LLMClient._coerce_json('```json\n{"a": 1}\n```') == {"a": 1}

    def test_commentary_around_object(self):
        text = 'Here you go: {"name": "Jane {Doe}", "skills": ["x"]} hope it helps'
        assert LLMClient._coerce_json(text) == {"name": "Jane {Doe}", "skills": ["x"]}

    def test_single_element_list(self):
        assert LLMClient._coerce_json('[{"a": 1}]') == {"a": 1}

    @pytest.mark.parametrize("text", ["", "not json at all", "[1, 2]", '{"a": '])
    def test_undecodable(self, text):
        with pytest.raises(json.JSONDecodeError):
            LLMClient._coerce_json(text)


class TestCompleteStructured:
    def test_returns_decoded_object(self):
        client = LLMClient(model="fast", provider="openai")
        with patch.object(LLMClient, "_chat_openai", return_value='{"full_name": "Jane"}') as chat:
            assert client.complete_structured("sys", "text", timeout=5) == {"full_name": "Jane"}
        messages, timeout = chat.call_args.args
        assert messages[0] == {"role": "system", "content": "sys"}
        assert messages[1] == {"role": "user", "content": "text"}
        assert timeout == 5

    def test_garbage_output_is_parse_error(self):
        client = LLMClient(provider="openai")
        with patch.object(LLMClient, "_chat_openai", return_value="I cannot help with that"):
            with pytest.raises(ParseError) as exc_info:
                client.complete_structured("sys", "text")
        assert exc_info.value.details["raw_preview"] == "I cannot help with that"

    def test_provider_failure_is_classified(self):
        client = LLMClient(provider="ollama")
        with patch.object(LLMClient, "_chat_ollama", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(ProviderTransientError):
                client.complete_structured("sys", "text")

    def test_ollama_payload(self):
        client = LLMClient(model="llama3", provider="ollama")
        response = MagicMock()
        response.json.return_value = {"message": {"content": ' {"title": "Dev"} '}}
        with patch.object(settings, "OLLAMA_BASE_URL", "http://ollama.test/"), \
                patch("talentmatch.services.common.llm_client.requests.post", return_value=response) as post:
            assert client.complete_structured("sys", "text", timeout=7) == {"title": "Dev"}
        assert post.call_args.args[0] == "http://ollama.test/api/chat"
        payload = post.call_args.kwargs["json"]
        assert payload["model"] == "llama3"
        assert payload["format"] == "json"
        assert payload["stream"] is False
        assert post.call_args.kwargs["timeout"] == 7

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            LLMClient(provider="carrier-pigeon")


class TestClassifyProviderError:
    def test_connection_and_timeout_are_transient(self):
        assert isinstance(classify_provider_error(openai.APIConnectionError(request=REQUEST)), ProviderTransientError)
        assert isinstance(classify_provider_error(openai.APITimeoutError(request=REQUEST)), ProviderTransientError)
        assert isinstance(classify_provider_error(requests.Timeout("slow")), ProviderTransientError)

    def test_rate_limit_is_transient(self):
        err = classify_provider_error(status_error(openai.RateLimitError, 429))
        assert isinstance(err, ProviderTransientError)

    def test_exhausted_quota_is_fatal(self):
        exc = status_error(openai.RateLimitError, 429, body={"code": "insufficient_quota"})
        assert isinstance(classify_provider_error(exc), ProviderFatalError)

    def test_auth_is_fatal(self):
        err = classify_provider_error(status_error(openai.AuthenticationError, 401))
        assert isinstance(err, ProviderFatalError)
        assert err.cause is not None

    def test_server_errors_are_transient(self):
        assert isinstance(classify_provider_error(status_error(openai.InternalServerError, 500)), ProviderTransientError)
        assert isinstance(classify_provider_error(http_error(503)), ProviderTransientError)
        assert isinstance(classify_provider_error(http_error(429)), ProviderTransientError)

    def test_other_client_errors_are_fatal(self):
        assert isinstance(classify_provider_error(status_error(openai.BadRequestError, 400)), ProviderFatalError)
        assert isinstance(classify_provider_error(http_error(404)), ProviderFatalError)

    def test_already_classified_passes_through(self):
        original = ProviderTransientError("retry me")
        assert classify_provider_error(original) is original


class TestModelsAndPrompts:
    def test_tiers(self):
        assert resolve_model("fast") == settings.EXTRACTION_MODEL_FAST
        assert resolve_model("CAPABLE") == settings.EXTRACTION_MODEL_CAPABLE
        assert resolve_model("my-finetune") == "my-finetune"

    def test_default_tier(self):
        with patch.object(settings, "EXTRACTION_MODEL_TIER", "fast"):
            assert resolve_model(None) == settings.EXTRACTION_MODEL_FAST

    def test_prompt_loading(self):
        assert load_prompt("resumes/candidate_profile.prompt.txt")
        with pytest.raises(FileNotFoundError):
            load_prompt("nowhere/missing.prompt.txt")
