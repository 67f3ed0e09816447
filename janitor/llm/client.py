"""
Oracle Client
=============
Asynchronous client for the remote code-repair service ("the oracle").

Providers:
    - openai     — OpenAI-compatible chat completions endpoint
    - anthropic  — Anthropic messages endpoint
    The provider is picked from the model table in llm/router.py.

Contract:
    complete(system_prompt, user_prompt, model, temperature) -> OracleResponse
    Never raises for transport problems: timeouts, HTTP errors and empty
    bodies come back as success=False with an error message. Token usage
    reported by the provider is passed through so the Cost Governor can
    record the actual spend.

Response Parsing:
    - Bare NEEDS_HUMAN_REVIEW / CANNOT_FIX sentinels are detected first
    - Markdown code fences are stripped
    - JSON {"fixed_content", "reasoning"} is preferred
    - Regex extraction of "fixed_content" as a fallback
    - Otherwise the whole text is taken as the fixed file
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from janitor.core.constants import CANNOT_FIX_SENTINEL, NEEDS_REVIEW_SENTINEL
from janitor.llm.router import get_model_config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Oracle Response
# ---------------------------------------------------------------------------
@dataclass
class OracleResponse:
    """Raw completion plus usage, as returned by a provider."""
    text: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    success: bool = True
    error: str = ""
    timed_out: bool = False


@dataclass
class ParsedFix:
    """Structured view of an oracle completion."""
    fixed_content: str = ""
    reasoning: str = ""
    needs_review: bool = False
    declined: bool = False
    valid: bool = True
    error: str = ""


# ---------------------------------------------------------------------------
# Response Parsing
# ---------------------------------------------------------------------------
def _strip_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        first_newline = cleaned.find("\n")
        if first_newline != -1:
            cleaned = cleaned[first_newline + 1:]
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3].rstrip()
    return cleaned


def parse_oracle_response(raw: str) -> ParsedFix:
    """
    Parse an oracle completion into a ParsedFix.

    Parameters
    ----------
    raw : str
        Raw text returned by the provider.

    Returns
    -------
    ParsedFix
        valid=False when nothing usable came back.
    """
    if not raw or not raw.strip():
        return ParsedFix(valid=False, error="Empty response from oracle")

    stripped = raw.strip()
    if stripped == NEEDS_REVIEW_SENTINEL:
        return ParsedFix(needs_review=True, reasoning="requires manual review")
    if stripped == CANNOT_FIX_SENTINEL:
        return ParsedFix(declined=True, reasoning="oracle declined to fix")

    cleaned = _strip_fences(stripped)

    try:
        data = json.loads(cleaned)
        if isinstance(data, dict):
            fixed = data.get("fixed_content", "")
            reasoning = str(data.get("reasoning", ""))
            if not isinstance(fixed, str) or not fixed.strip():
                return ParsedFix(valid=False, reasoning=reasoning, error="Missing fixed_content")
            return ParsedFix(fixed_content=fixed, reasoning=reasoning)
    except (json.JSONDecodeError, ValueError, TypeError):
        pass

    fixed_match = re.search(r'"fixed_content"\s*:\s*"((?:[^"\\]|\\.)*)"', cleaned, re.DOTALL)
    if fixed_match:
        fixed = fixed_match.group(1)
        try:
            fixed = json.loads(f'"{fixed}"')
        except json.JSONDecodeError:
            logger.debug("Could not unescape fixed_content, using it verbatim")
        reasoning_match = re.search(r'"reasoning"\s*:\s*"((?:[^"\\]|\\.)*)"', cleaned, re.DOTALL)
        return ParsedFix(
            fixed_content=fixed,
            reasoning=reasoning_match.group(1) if reasoning_match else "",
        )

    logger.warning("Could not parse oracle JSON response, using raw text as the fixed file")
    return ParsedFix(fixed_content=cleaned, reasoning="")


# ---------------------------------------------------------------------------
# Oracle Client
# ---------------------------------------------------------------------------
class OracleClient:
    """
    Async HTTP client for the oracle.

    Usage:
        client = OracleClient(openai_api_key="...", anthropic_api_key="...")
        response = await client.complete(system, user, "gpt-4o", 0.1)
        await client.close()
    """

    def __init__(
        self,
        openai_api_key: str = "",
        anthropic_api_key: str = "",
        openai_base_url: str = "https://api.openai.com/v1",
        anthropic_base_url: str = "https://api.anthropic.com/v1",
        timeout_seconds: float = 60.0,
        max_retries: int = 2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.openai_api_key = openai_api_key
        self.anthropic_api_key = anthropic_api_key
        self.openai_base_url = openai_base_url.rstrip("/")
        self.anthropic_base_url = anthropic_base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.max_retries = max(1, max_retries)
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    async def _get_http(self) -> httpx.AsyncClient:
        """Lazy-initialise the HTTP client."""
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                transport=self._transport,
            )
        return self._http

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http and not self._http.is_closed:
            await self._http.aclose()
            self._http = None

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float = 0.1,
        before_retry: Optional[Callable[[int, int], bool]] = None,
    ) -> OracleResponse:
        """
        Send one prompt to the provider serving `model`.

        Parameters
        ----------
        system_prompt : str
            Instruction block.
        user_prompt : str
            Issue description plus file content.
        model : str
            Model identifier from the router's table.
        temperature : float
            Sampling temperature.
        before_retry : callable, optional
            Called with the tokens used so far before every retry; a False
            return stops retrying. Each retry is a billed request.

        Returns
        -------
        OracleResponse
            Completion text and token usage, or success=False with error.
        """
        config = get_model_config(model)
        provider = config.provider if config else "openai"
        max_tokens = config.max_output_tokens if config else 4096
        timed_out = False
        last_error = ""
        used_in = used_out = 0

        for attempt in range(1, self.max_retries + 1):
            if attempt > 1 and before_retry is not None and not before_retry(used_in, used_out):
                logger.warning("Oracle %s: retry %d refused by the spend ceiling", model, attempt)
                last_error = (last_error + "; " if last_error else "") + "retry refused by spend ceiling"
                break
            try:
                if provider == "anthropic":
                    response = await self._call_anthropic(
                        system_prompt, user_prompt, model, temperature, max_tokens,
                    )
                else:
                    response = await self._call_openai_compatible(
                        system_prompt, user_prompt, model, temperature, max_tokens,
                    )
                used_in += response.input_tokens
                used_out += response.output_tokens
                if response.text:
                    response.input_tokens, response.output_tokens = used_in, used_out
                    return response
                last_error = "Empty completion"
                logger.warning("Oracle %s attempt %d: empty completion", model, attempt)

            except httpx.TimeoutException:
                timed_out = True
                last_error = f"Oracle call timed out after {self.timeout_seconds}s"
                logger.warning("Oracle %s attempt %d: timeout", model, attempt)
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                last_error = f"HTTP {status}"
                logger.warning("Oracle %s attempt %d: HTTP %d", model, attempt, status)
                if 400 <= status < 500:
                    # Client errors and rate limits will not improve on retry
                    break
            except httpx.HTTPError as e:
                last_error = str(e) or e.__class__.__name__
                logger.warning("Oracle %s attempt %d: %s", model, attempt, last_error)
            except ValueError as e:
                # Body was not JSON
                last_error = f"Malformed oracle response: {e}"
                logger.warning("Oracle %s attempt %d: malformed body", model, attempt)

        return OracleResponse(
            text="",
            model=model,
            input_tokens=used_in,
            output_tokens=used_out,
            success=False,
            error=last_error or f"All {self.max_retries} retries exhausted for {model}",
            timed_out=timed_out,
        )

    async def _call_openai_compatible(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> OracleResponse:
        """Call an OpenAI-compatible chat completions API."""
        http = await self._get_http()
        url = f"{self.openai_base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.openai_api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        resp = await http.post(url, json=payload, headers=headers)
        resp.raise_for_status()
        data = resp.json()

        text = ""
        choices = data.get("choices") or []
        if choices:
            text = (choices[0].get("message") or {}).get("content") or ""
        usage = data.get("usage") or {}
        return OracleResponse(
            text=text,
            model=model,
            input_tokens=int(usage.get("prompt_tokens", 0)),
            output_tokens=int(usage.get("completion_tokens", 0)),
        )

    async def _call_anthropic(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> OracleResponse:
        """Call the Anthropic messages API."""
        http = await self._get_http()
        url = f"{self.anthropic_base_url}/messages"
        headers = {
            "x-api-key": self.anthropic_api_key,
            "anthropic-version": "2023-06-01",
            "Content-Type": "application/json",
        }
        payload = {
            "model": model,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        resp = await http.post(url, json=payload, headers=headers)
        resp.raise_for_status()
        data = resp.json()

        text = "".join(
            block.get("text", "")
            for block in data.get("content") or []
            if block.get("type") == "text"
        )
        usage = data.get("usage") or {}
        return OracleResponse(
            text=text,
            model=model,
            input_tokens=int(usage.get("input_tokens", 0)),
            output_tokens=int(usage.get("output_tokens", 0)),
        )
