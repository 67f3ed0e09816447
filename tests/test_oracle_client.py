"""
Oracle Client Tests
===================
Response parsing and provider calls over a mocked httpx transport.
"""
import asyncio
import json

import httpx

from janitor.llm.client import OracleClient, parse_oracle_response


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------
def test_parse_json_response():
    parsed = parse_oracle_response(json.dumps({"fixed_content": "x = 1\n", "reasoning": "typo"}))
    assert parsed.valid
    assert parsed.fixed_content == "x = 1\n"
    assert parsed.reasoning == "typo"


def test_parse_fenced_json():
    raw = '```json\n{"fixed_content": "a = 2", "reasoning": "r"}\n```'
    assert parse_oracle_response(raw).fixed_content == "a = 2"


def test_parse_sentinels():
    review = parse_oracle_response("  NEEDS_HUMAN_REVIEW \n")
    assert review.needs_review and not review.declined
    declined = parse_oracle_response("CANNOT_FIX")
    assert declined.declined and not declined.needs_review


def test_parse_empty_and_missing_content():
    assert parse_oracle_response("").valid is False
    assert parse_oracle_response('{"reasoning": "nothing"}').valid is False


def test_parse_regex_fallback_on_broken_json():
    raw = '{"fixed_content": "print(\\"hi\\")\\n", "reasoning": "ok",}'
    parsed = parse_oracle_response(raw)
    assert parsed.fixed_content == 'print("hi")\n'
    assert parsed.reasoning == "ok"


def test_parse_raw_text_fallback():
    parsed = parse_oracle_response("```python\ndef f():\n    return 1\n```")
    assert parsed.valid
    assert parsed.fixed_content == "def f():\n    return 1"


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------
def _client(handler, **kw):
    return OracleClient(
        openai_api_key="sk-test",
        anthropic_api_key="ak-test",
        transport=httpx.MockTransport(handler),
        **kw,
    )


def test_openai_call_returns_text_and_usage():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "choices": [{"message": {"content": "fixed"}}],
            "usage": {"prompt_tokens": 120, "completion_tokens": 30},
        })

    async def run_test():
        client = _client(handler)
        try:
            return await client.complete("sys", "user", "gpt-4o", 0.1)
        finally:
            await client.close()

    response = asyncio.run(run_test())
    assert response.success
    assert response.text == "fixed"
    assert (response.input_tokens, response.output_tokens) == (120, 30)
    assert seen["url"].endswith("/chat/completions")
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["temperature"] == 0.1
    assert seen["body"]["messages"][0] == {"role": "system", "content": "sys"}


def test_anthropic_call_uses_messages_api():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers["x-api-key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "content": [{"type": "text", "text": "part1 "}, {"type": "text", "text": "part2"}],
            "usage": {"input_tokens": 50, "output_tokens": 10},
        })

    response = asyncio.run(_client(handler).complete("sys", "user", "claude-3-opus-20240229", 0.0))
    assert response.text == "part1 part2"
    assert response.input_tokens == 50
    assert seen["url"].endswith("/messages")
    assert seen["key"] == "ak-test"
    assert seen["body"]["system"] == "sys"


def test_client_error_is_not_retried():
    calls = []

    def handler(request):
        calls.append(1)
        return httpx.Response(429, json={"error": "rate limited"})

    response = asyncio.run(_client(handler, max_retries=3).complete("s", "u", "gpt-4o"))
    assert response.success is False
    assert response.error == "HTTP 429"
    assert len(calls) == 1


def test_server_error_retried_then_fails():
    calls = []

    def handler(request):
        calls.append(1)
        return httpx.Response(503)

    response = asyncio.run(_client(handler, max_retries=2).complete("s", "u", "gpt-4o"))
    assert response.success is False
    assert len(calls) == 2


def test_timeout_flags_response():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    response = asyncio.run(_client(handler, max_retries=1).complete("s", "u", "gpt-4o"))
    assert response.success is False
    assert response.timed_out is True


def test_malformed_body_never_raises():
    def handler(request):
        return httpx.Response(200, content=b"<html>gateway</html>")

    response = asyncio.run(_client(handler, max_retries=1).complete("s", "u", "gpt-4o"))
    assert response.success is False
    assert "Malformed" in response.error


def test_retry_is_skipped_when_guard_refuses():
    calls = []
    seen_usage = []

    def handler(request):
        calls.append(1)
        return httpx.Response(200, json={
            "choices": [{"message": {"content": ""}}],
            "usage": {"prompt_tokens": 300, "completion_tokens": 20},
        })

    def guard(used_in, used_out):
        seen_usage.append((used_in, used_out))
        return False

    response = asyncio.run(_client(handler, max_retries=3).complete("s", "u", "gpt-4o", before_retry=guard))
    assert len(calls) == 1
    assert seen_usage == [(300, 20)]
    assert response.success is False
    assert "spend ceiling" in response.error
    assert (response.input_tokens, response.output_tokens) == (300, 20)
