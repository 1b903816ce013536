"""Tests for llm_client.py - OpenAI glue and reply parsing."""

import pytest

import llm_client
from conftest import FakeOpenAI, make_pdf


def test_clean_json_response_strips_fences():
    assert llm_client.clean_json_response('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert llm_client.clean_json_response('```\n[1, 2]\n```\n') == "[1, 2]"
    assert llm_client.clean_json_response("  {}  ") == "{}"
    assert llm_client.clean_json_response(None) == ""


def test_parse_json_response_recovers_object_from_prose():
    reply = 'Here is the summary:\n{"period": "Mar 2024", "credits": 185000}\nLet me know!'

    assert llm_client.parse_json_response(reply) == {"period": "Mar 2024", "credits": 185000}


def test_parse_json_response_rejects_garbage():
    with pytest.raises(ValueError):
        llm_client.parse_json_response("I could not read this statement.")


def test_get_openai_client_requires_key(no_api_key):
    with pytest.raises(ValueError, match="OPENAI_API_KEY"):
        llm_client.get_openai_client()


def test_complete_passes_request_options(fake_openai):
    fake_openai.reply = "hello"

    text = llm_client.complete(
        messages=[{"role": "user", "content": "hi"}],
        model="gpt-4o-mini",
        max_tokens=50,
        temperature=0,
    )

    assert text == "hello"
    call = fake_openai.calls[0]
    assert call["model"] == "gpt-4o-mini"
    assert call["max_tokens"] == 50
    assert call["temperature"] == 0


def test_complete_returns_empty_string_for_empty_reply(fake_openai):
    fake_openai.reply = None

    assert llm_client.complete([{"role": "user", "content": "hi"}], "gpt-4o", 10) == ""


def test_complete_propagates_api_errors(monkeypatch, api_key):
    fake = FakeOpenAI([RuntimeError("rate limited")])
    monkeypatch.setattr(llm_client, "get_openai_client", lambda api_key=None: fake)

    with pytest.raises(RuntimeError, match="rate limited"):
        llm_client.complete([{"role": "user", "content": "hi"}], "gpt-4o", 10)


def test_pdf_content_parts_has_text_layer_and_images():
    parts = llm_client.pdf_content_parts(make_pdf("Opening balance 50,000"), "march.pdf", max_pages=1)

    assert parts[0] == {"type": "text", "text": "=== Document: march.pdf ==="}
    assert "Opening balance 50,000" in parts[1]["text"]
    assert parts[2]["type"] == "image_url"
    assert parts[2]["image_url"]["url"].startswith("data:image/png;base64,")
    assert len(parts) == 3


def test_pdf_content_parts_skips_empty_text_layer():
    parts = llm_client.pdf_content_parts(make_pdf(""), "scan.pdf")

    assert [p["type"] for p in parts] == ["text", "image_url"]
