from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Optional

from langchain_core.language_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI

from config.settings import Settings, get_settings


logger = logging.getLogger("chat_helper.agent")


class MissingCredentialError(RuntimeError):
    """Raised when the model is requested without an API key configured."""


def build_llm(settings: Optional[Settings] = None) -> BaseChatModel:
    settings = settings or get_settings()
    if not settings.google_api_key:
        raise MissingCredentialError(
            "GOOGLE_API_KEY not set. Please configure it in environment or .env"
        )

    return ChatGoogleGenerativeAI(
        model=settings.gemini_model,
        google_api_key=settings.google_api_key,
        temperature=settings.temperature,
        top_p=settings.top_p,
    )


def chunk_text(chunk: Any) -> str:
    """Pull the plain text out of a streamed message chunk.

    Gemini chunks carry either a string or a list of content parts; only
    text parts are kept.
    """
    content = getattr(chunk, "content", chunk)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts = []
        for part in content:
            if isinstance(part, str):
                texts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                texts.append(part.get("text") or "")
        return "".join(texts)
    return ""


async def stream_answer(llm: BaseChatModel, prompt: str) -> AsyncIterator[str]:
    """Yield the model's text fragments for ``prompt`` in arrival order.

    Empty fragments are dropped. Backend errors are logged and re-raised so
    the caller sees a broken stream instead of a truncated answer.
    """
    fragments = 0
    chars = 0
    try:
        async for chunk in llm.astream(prompt):
            text = chunk_text(chunk)
            if not text:
                continue
            fragments += 1
            chars += len(text)
            yield text
    except Exception:
        logger.exception(
            "Streaming error after %s fragments (%s chars)", fragments, chars
        )
        raise

    logger.info("Stream finished: %s fragments, %s chars", fragments, chars)
