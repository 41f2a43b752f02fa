"""
Tests for the wire-format adapters.

Adapters are pure, so every test asserts on the returned UpstreamRequest;
no HTTP is involved.
"""

import pytest

from assistant_gateway.ai.errors import ProviderMisconfigured
from assistant_gateway.ai.providers import (
    BuiltinProvider,
    CallDescriptor,
    ChatCompletionsAdapter,
    ChatTurn,
    GenerateContentAdapter,
    MessagesAdapter,
    ProviderConfig,
    ProviderKind,
    get_adapter,
)
from assistant_gateway.ai.providers.base import join_url, parse_image_reference


def make_config(kind: ProviderKind, **overrides) -> ProviderConfig:
    values = dict(
        id="cfg-1",
        label="Test provider",
        kind=kind,
        base_url="https://api.example.com/v1",
        model="test-model",
        credential="secret",
        enabled=True,
    )
    values.update(overrides)
    return ProviderConfig(**values)


def make_call(**overrides) -> CallDescriptor:
    values = dict(
        instruction="You are helpful.",
        turns=(
            ChatTurn(role="user", content="hello"),
            ChatTurn(role="assistant", content="hi there"),
            ChatTurn(role="user", content="how are you?"),
        ),
    )
    values.update(overrides)
    return CallDescriptor(**values)


PNG_DATA_URL = "data:image/png;base64,iVBORw0KGgo="


class TestUrlJoining:
    """Suffixes are appended exactly once."""

    def test_appends_suffix(self):
        assert join_url("https://api.openai.com/v1", "/chat/completions") == (
            "https://api.openai.com/v1/chat/completions"
        )

    def test_does_not_double_append(self):
        assert join_url("https://host/v1/chat/completions", "/chat/completions") == (
            "https://host/v1/chat/completions"
        )

    def test_trailing_slash_is_ignored(self):
        assert join_url("https://host/v1/", "/messages") == "https://host/v1/messages"
        assert join_url("https://host/v1/messages/", "/messages") == "https://host/v1/messages"


class TestEligibility:
    """Ineligible configs never produce a request."""

    @pytest.mark.parametrize(
        "overrides, reason",
        [
            ({"credential": ""}, "missing API key"),
            ({"model": "  "}, "missing model"),
            ({"base_url": ""}, "missing base URL"),
            ({"enabled": False}, "provider is disabled"),
        ],
    )
    def test_ineligible_config_raises(self, overrides, reason):
        config = make_config(ProviderKind.CHAT_COMPLETIONS, **overrides)

        assert config.is_eligible is False
        assert config.ineligibility_reason() == reason
        with pytest.raises(ProviderMisconfigured):
            get_adapter(config.kind).build(config, make_call())

    def test_credential_not_in_repr(self):
        config = make_config(ProviderKind.MESSAGES)

        assert "secret" not in repr(config)


class TestChatCompletionsAdapter:
    """Tests for the OpenAI-compatible wire format."""

    def test_builds_request(self):
        adapter = ChatCompletionsAdapter(probe_max_tokens=10)
        upstream = adapter.build(make_config(ProviderKind.CHAT_COMPLETIONS), make_call())

        assert upstream.url == "https://api.example.com/v1/chat/completions"
        assert upstream.headers["Authorization"] == "Bearer secret"
        assert upstream.body["model"] == "test-model"
        assert upstream.body["stream"] is True
        assert upstream.body["messages"][0] == {"role": "system", "content": "You are helpful."}
        assert [m["role"] for m in upstream.body["messages"]] == ["system", "user", "assistant", "user"]
        assert "max_tokens" not in upstream.body

    def test_probe_limits_tokens(self):
        adapter = ChatCompletionsAdapter(probe_max_tokens=10)
        upstream = adapter.build(
            make_config(ProviderKind.CHAT_COMPLETIONS),
            make_call(probe=True, stream=False),
        )

        assert upstream.body["max_tokens"] == 10
        assert upstream.body["stream"] is False

    def test_full_endpoint_url_is_kept(self):
        adapter = ChatCompletionsAdapter()
        config = make_config(
            ProviderKind.CHAT_COMPLETIONS,
            base_url="https://openrouter.ai/api/v1/chat/completions",
        )

        upstream = adapter.build(config, make_call())

        assert upstream.url == "https://openrouter.ai/api/v1/chat/completions"

    def test_images_become_content_parts(self):
        adapter = ChatCompletionsAdapter()
        call = make_call(turns=(ChatTurn(role="user", content="what is this?", images=(PNG_DATA_URL,)),))

        upstream = adapter.build(make_config(ProviderKind.CHAT_COMPLETIONS), call)

        content = upstream.body["messages"][1]["content"]
        assert content[0] == {"type": "text", "text": "what is this?"}
        assert content[1] == {"type": "image_url", "image_url": {"url": PNG_DATA_URL}}

    def test_body_overrides_are_merged(self):
        adapter = ChatCompletionsAdapter()
        call = make_call(body_overrides={"modalities": ["image", "text"]})

        upstream = adapter.build(make_config(ProviderKind.CHAT_COMPLETIONS), call)

        assert upstream.body["modalities"] == ["image", "text"]

    def test_extract_text(self):
        adapter = ChatCompletionsAdapter()

        assert adapter.extract_text({"choices": [{"delta": {"content": "Hi"}}]}) == "Hi"
        assert adapter.extract_text({"choices": [{"delta": {"role": "assistant"}}]}) == ""
        assert adapter.extract_text({"choices": [{"message": {"content": "Done"}}]}) == "Done"
        assert adapter.extract_text({"choices": []}) == ""
        assert adapter.extract_text("not a dict") == ""

    def test_extract_text_ignores_non_string_content(self):
        adapter = ChatCompletionsAdapter()

        assert adapter.extract_text({"choices": [{"message": {"content": {"text": "odd"}}}]}) == ""
        assert adapter.extract_text({"choices": [{"delta": {"content": 42}}]}) == ""
        assert adapter.extract_text({"choices": [{"message": "flat"}]}) == ""
        assert adapter.extract_text({"choices": {"0": {}}}) == ""
        assert adapter.extract_text(
            {"choices": [{"message": {"content": [{"text": None}, {"text": "ok"}]}}]}
        ) == "ok"

    def test_extract_images(self):
        payload = {
            "choices": [
                {
                    "message": {
                        "content": "Here you go",
                        "images": [
                            {"type": "image_url", "image_url": {"url": PNG_DATA_URL}},
                            {"type": "image_url", "image_url": {}},
                        ],
                    }
                }
            ]
        }

        assert ChatCompletionsAdapter.extract_images(payload) == [PNG_DATA_URL]
        assert ChatCompletionsAdapter.extract_images(None) == []

    def test_extract_images_skips_malformed_entries(self):
        payload = {
            "choices": [
                {
                    "message": {
                        "images": [
                            "not-a-dict",
                            None,
                            {"image_url": "flat-string"},
                            {"image_url": {"url": PNG_DATA_URL}},
                        ],
                    }
                }
            ]
        }

        assert ChatCompletionsAdapter.extract_images(payload) == [PNG_DATA_URL]
        assert ChatCompletionsAdapter.extract_images({"choices": ["oops"]}) == []
        assert ChatCompletionsAdapter.extract_images({"choices": [{"message": {"images": "x"}}]}) == []


class TestMessagesAdapter:
    """Tests for the Anthropic-shaped wire format."""

    def test_builds_request(self):
        adapter = MessagesAdapter(anthropic_version="2023-06-01", max_output_tokens=4096)
        call = make_call(
            turns=(
                ChatTurn(role="system", content="ignored"),
                ChatTurn(role="user", content="hello"),
            )
        )

        upstream = adapter.build(make_config(ProviderKind.MESSAGES), call)

        assert upstream.url == "https://api.example.com/v1/messages"
        assert upstream.headers["x-api-key"] == "secret"
        assert upstream.headers["anthropic-version"] == "2023-06-01"
        assert "Authorization" not in upstream.headers
        assert upstream.body["system"] == "You are helpful."
        assert upstream.body["max_tokens"] == 4096
        assert upstream.body["messages"] == [{"role": "user", "content": "hello"}]
        assert upstream.body["stream"] is True

    def test_probe_limits_tokens(self):
        adapter = MessagesAdapter(probe_max_tokens=10)

        upstream = adapter.build(make_config(ProviderKind.MESSAGES), make_call(probe=True))

        assert upstream.body["max_tokens"] == 10

    def test_inline_and_remote_images(self):
        adapter = MessagesAdapter()
        call = make_call(
            turns=(
                ChatTurn(
                    role="user",
                    content="compare",
                    images=(PNG_DATA_URL, "https://cdn.example.com/photo.jpg"),
                ),
            )
        )

        upstream = adapter.build(make_config(ProviderKind.MESSAGES), call)

        blocks = upstream.body["messages"][0]["content"]
        assert blocks[0] == {"type": "text", "text": "compare"}
        assert blocks[1]["source"] == {
            "type": "base64",
            "media_type": "image/png",
            "data": "iVBORw0KGgo=",
        }
        assert blocks[2]["source"] == {"type": "url", "url": "https://cdn.example.com/photo.jpg"}

    def test_extract_text(self):
        adapter = MessagesAdapter()

        assert adapter.extract_text(
            {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "Hel"}}
        ) == "Hel"
        assert adapter.extract_text({"type": "message_start", "message": {}}) == ""
        assert adapter.extract_text({"type": "ping"}) == ""
        assert adapter.extract_text({"type": "content_block_delta", "delta": "raw"}) == ""
        assert adapter.extract_text({"content": [{"type": "text", "text": None}]}) == ""
        assert adapter.extract_text(
            {"content": [{"type": "text", "text": "Hello"}, {"type": "tool_use"}]}
        ) == "Hello"


class TestGenerateContentAdapter:
    """Tests for the Google-shaped wire format."""

    def test_builds_request(self):
        adapter = GenerateContentAdapter()
        config = make_config(
            ProviderKind.GENERATE_CONTENT,
            base_url="https://generativelanguage.googleapis.com/v1beta",
            model="gemini-2.0-flash",
        )

        upstream = adapter.build(config, make_call())

        assert upstream.url == (
            "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash"
            ":streamGenerateContent?alt=sse&key=secret"
        )
        contents = upstream.body["contents"]
        assert contents[0] == {"role": "user", "parts": [{"text": "You are helpful."}]}
        assert [c["role"] for c in contents] == ["user", "user", "model", "user"]
        assert "generationConfig" not in upstream.body
        assert "Authorization" not in upstream.headers

    def test_existing_method_suffix_is_not_doubled(self):
        adapter = GenerateContentAdapter()
        config = make_config(
            ProviderKind.GENERATE_CONTENT,
            base_url="https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:generateContent",
            model="models/gemini-2.0-flash",
        )

        upstream = adapter.build(config, make_call())

        assert upstream.url.startswith(
            "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:streamGenerateContent?"
        )
        assert upstream.url.count("/models/") == 1

    def test_probe_sets_generation_config(self):
        adapter = GenerateContentAdapter(probe_max_tokens=10)

        upstream = adapter.build(make_config(ProviderKind.GENERATE_CONTENT), make_call(probe=True))

        assert upstream.body["generationConfig"] == {"maxOutputTokens": 10}

    def test_inline_image_part(self):
        adapter = GenerateContentAdapter()
        call = make_call(turns=(ChatTurn(role="user", content="look", images=(PNG_DATA_URL,)),))

        upstream = adapter.build(make_config(ProviderKind.GENERATE_CONTENT), call)

        parts = upstream.body["contents"][1]["parts"]
        assert parts[0] == {"text": "look"}
        assert parts[1] == {"inline_data": {"mime_type": "image/png", "data": "iVBORw0KGgo="}}

    def test_extract_text(self):
        adapter = GenerateContentAdapter()
        chunk = {"candidates": [{"content": {"parts": [{"text": "Hi"}, {"text": "!"}]}}]}

        assert adapter.extract_text(chunk) == "Hi!"
        assert adapter.extract_text([chunk, chunk]) == "Hi!Hi!"
        assert adapter.extract_text({"candidates": []}) == ""
        assert adapter.extract_text(
            {"candidates": [{"content": {"parts": [{"text": None}, {"text": "ok"}]}}]}
        ) == "ok"
        assert adapter.extract_text({"candidates": [{"content": {"parts": "Hi"}}]}) == ""


class TestProviderKinds:
    """Vendor names and the adapter registry."""

    @pytest.mark.parametrize(
        "vendor, kind",
        [
            ("openai", ProviderKind.CHAT_COMPLETIONS),
            ("OpenRouter", ProviderKind.CHAT_COMPLETIONS),
            ("groq", ProviderKind.CHAT_COMPLETIONS),
            ("anthropic", ProviderKind.MESSAGES),
            ("google", ProviderKind.GENERATE_CONTENT),
            ("gemini", ProviderKind.GENERATE_CONTENT),
            ("messages", ProviderKind.MESSAGES),
            ("generate_content", ProviderKind.GENERATE_CONTENT),
            ("something-new", ProviderKind.CHAT_COMPLETIONS),
            (None, ProviderKind.CHAT_COMPLETIONS),
        ],
    )
    def test_from_vendor(self, vendor, kind):
        assert ProviderKind.from_vendor(vendor) == kind

    def test_every_kind_has_an_adapter(self):
        for kind in ProviderKind:
            assert get_adapter(kind).kind == kind

    def test_parse_image_reference(self):
        inline = parse_image_reference("data:image/jpeg;base64,/9j/4AAQ")
        remote = parse_image_reference("https://cdn.example.com/a.png?size=large")

        assert inline.is_inline and inline.mime_type == "image/jpeg"
        assert not remote.is_inline and remote.mime_type == "image/png"


class TestBuiltinProvider:
    """Tests for the built-in default provider."""

    def test_candidates_put_user_model_first(self):
        builtin = BuiltinProvider(
            base_url="https://ai.example.com/v1",
            credential="key",
            models=["model-a", "model-b"],
        )

        models = [config.model for config in builtin.candidates(user_model="model-b")]

        assert models == ["model-b", "model-a"]

    def test_candidates_are_chat_completions(self):
        builtin = BuiltinProvider(base_url="https://ai.example.com/v1", credential="key", models=["m"])

        config = builtin.primary()

        assert config.kind == ProviderKind.CHAT_COMPLETIONS
        assert config.model == "m"
        assert config.is_eligible

    def test_without_key_is_not_eligible(self):
        builtin = BuiltinProvider(base_url="https://ai.example.com/v1", credential="", models=["m"])

        assert builtin.primary().is_eligible is False
