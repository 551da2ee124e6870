# eldergrid/utils/llm_agent.py
from __future__ import annotations

import os
from typing import List, Dict, Optional

import httpx
from openai import OpenAI

DEFAULT_MODEL = "gpt-4o-mini"


class LLMError(RuntimeError):
    pass


def _make_client(api_key: str, base_url: Optional[str] = None) -> OpenAI:
    timeout = httpx.Timeout(connect=10.0, read=30.0, write=10.0, pool=10.0)
    http_client = httpx.Client(timeout=timeout)
    return OpenAI(api_key=api_key, base_url=base_url, http_client=http_client)


def _messages_to_input(messages: List[Dict[str, str]]) -> str:
    parts = []
    for m in messages:
        role = m.get("role", "user").upper()
        content = (m.get("content") or "").strip()
        if not content:
            continue
        parts.append(f"{role}:\n{content}")
    return "\n\n".join(parts)


def _get_output_text(resp) -> str:
    text = getattr(resp, "output_text", None)
    if isinstance(text, str) and text.strip():
        return text.strip()

    out = []
    for item in getattr(resp, "output", None) or []:
        for c in getattr(item, "content", None) or []:
            if getattr(c, "type", None) == "output_text" and getattr(c, "text", ""):
                out.append(c.text)
    return "\n".join(out).strip()


def has_llm_key() -> bool:
    return bool(os.environ.get("OPENAI_API_KEY"))


def ask_llm(
    messages: List[Dict[str, str]],
    model: Optional[str] = None,
    api_key: Optional[str] = None,
    max_output_tokens: int = 300,
) -> str:
    """
    Single Responses API call through the OpenAI SDK.
    OPENAI_BASE_URL points it at any compatible gateway.
    """
    key = api_key or os.environ.get("OPENAI_API_KEY")
    if not key:
        raise LLMError("Missing OPENAI_API_KEY in .env")

    client = _make_client(key, os.environ.get("OPENAI_BASE_URL") or None)
    try:
        resp = client.responses.create(
            model=model or os.environ.get("ELDERGRID_LLM_MODEL") or DEFAULT_MODEL,
            input=_messages_to_input(messages),
            max_output_tokens=int(max_output_tokens),
        )
    except Exception as e:
        raise LLMError(f"Responses call failed: {type(e).__name__}: {e}")

    text = _get_output_text(resp)
    if not text:
        raise LLMError("Empty response text from the Responses API")
    return text
