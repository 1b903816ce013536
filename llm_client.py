"""OpenAI client helpers shared by the extraction, conversion and analysis stages."""

import json
import os
import re
import time
from typing import Any, Dict, List, Optional
from openai import OpenAI

from ingestion import pdf_text, render_pdf_pages
from logger import get_logger

logger = get_logger(__name__)

CODE_FENCE = re.compile(r"```(?:json)?\s*\n?", re.IGNORECASE)


def get_openai_client(api_key: str = None) -> OpenAI:
    """Get OpenAI client instance."""
    if api_key is None:
        api_key = os.getenv("OPENAI_API_KEY")

    if not api_key:
        raise ValueError("OpenAI API key not found. Set OPENAI_API_KEY environment variable.")

    return OpenAI(api_key=api_key)


def complete(
    messages: List[Dict[str, Any]],
    model: str,
    max_tokens: int,
    temperature: float = 0.1,
    api_key: str = None
) -> str:
    """
    Send one chat-completion request and return the reply text.

    Args:
        messages: Chat messages (content may be a string or a list of parts)
        model: Model id
        max_tokens: Completion token limit
        temperature: Sampling temperature
        api_key: OpenAI API key (optional, will use env var if not provided)

    Returns:
        Text of the first choice, or "" when the model returned nothing
    """
    client = get_openai_client(api_key)

    start = time.time()
    response = client.chat.completions.create(
        model=model,
        messages=messages,
        temperature=temperature,
        max_tokens=max_tokens
    )
    logger.info("%s responded in %.2fs", model, time.time() - start)

    if not response.choices:
        return ""
    return response.choices[0].message.content or ""


def clean_json_response(content: str) -> str:
    """Strip markdown code fences from a model reply."""
    return CODE_FENCE.sub("", content or "").strip()


def parse_json_response(content: str) -> Any:
    """
    Parse a JSON object or array out of a model reply.

    Falls back to the outermost {...} span when the reply wraps the JSON in prose.

    Raises:
        ValueError: if no valid JSON can be recovered
    """
    cleaned = clean_json_response(content)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError:
            pass

    raise ValueError(f"Model reply is not valid JSON: {cleaned[:200]}")


def pdf_content_parts(content: bytes, filename: str, max_pages: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Build chat message parts that hand one PDF to the vision model.

    The text layer (when the PDF has one) goes first, followed by page images so
    scanned statements are readable too.
    """
    parts: List[Dict[str, Any]] = [{"type": "text", "text": f"=== Document: {filename} ==="}]

    text = pdf_text(content).strip()
    if text:
        parts.append({"type": "text", "text": f"Text layer:\n{text}"})

    for base64_image in render_pdf_pages(content, max_pages=max_pages):
        parts.append({
            "type": "image_url",
            "image_url": {
                "url": f"data:image/png;base64,{base64_image}"
            }
        })

    return parts
