"""Assistant dialogue session.

The session keeps the transient question/answer log and talks to the
``/api/chat`` endpoint. Only one question may be in flight: the session is
either ``IDLE`` or ``AWAITING_RESPONSE``, and ``ask`` is a no-op in the
latter state.

While a reply streams in, its text lives in ``_buffers`` under the
placeholder id; ``messages`` swaps the buffer into an immutable snapshot.
When the stream ends the placeholder is replaced by a frozen message with
the final text, or with ``APOLOGY`` if anything went wrong. Partial text is
discarded on failure.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx

from client.models import AssistantMessage, Role
from client.notebook import Notebook
from config.settings import get_settings


logger = logging.getLogger("chat_helper.client")

APOLOGY = "Sorry, there was an error connecting to the AI."

DEFAULT_TIMEOUT = httpx.Timeout(10.0, read=None)


class SessionState(str, Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting-response"


UpdateCallback = Callable[[AssistantMessage], None]


class AssistantSession:
    def __init__(
        self,
        api_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: httpx.Timeout = DEFAULT_TIMEOUT,
    ) -> None:
        self.api_url = api_url or get_settings().api_url
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self.state = SessionState.IDLE
        self._log: List[AssistantMessage] = []
        self._buffers: Dict[str, str] = {}

    async def __aenter__(self) -> "AssistantSession":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def is_busy(self) -> bool:
        return self.state is SessionState.AWAITING_RESPONSE

    @property
    def messages(self) -> Tuple[AssistantMessage, ...]:
        return tuple(self._snapshot(m) for m in self._log)

    async def ask(
        self,
        question: str,
        notebook: Optional[Notebook] = None,
        on_update: Optional[UpdateCallback] = None,
    ) -> Optional[AssistantMessage]:
        """Send ``question`` with both logs and stream the reply in.

        Returns the finished assistant message, or ``None`` when the
        question is blank or another one is still being answered.
        """
        question = (question or "").strip()
        if not question:
            return None
        if self.state is not SessionState.IDLE:
            logger.info("Question ignored: still awaiting the previous reply")
            return None

        self._log.append(AssistantMessage(text=question, role=Role.USER))
        payload = {
            "messages": notebook.to_payload() if notebook is not None else [],
            "aiMessages": [m.to_payload() for m in self._log],
            "userQuestion": question,
        }

        placeholder = AssistantMessage(role=Role.ASSISTANT)
        self._log.append(placeholder)
        self._buffers[placeholder.id] = ""
        self.state = SessionState.AWAITING_RESPONSE

        text = APOLOGY
        try:
            text = await self._stream(payload, placeholder, on_update)
        except httpx.HTTPError as exc:
            logger.warning("Assistant request failed: %s", exc)
        except Exception as exc:
            logger.exception("Assistant request failed unexpectedly: %s", exc)
        finally:
            final = self._finish(placeholder, text)
        return final

    async def _stream(
        self,
        payload: Dict[str, Any],
        placeholder: AssistantMessage,
        on_update: Optional[UpdateCallback],
    ) -> str:
        accumulated = ""
        async with self._http().stream("POST", self.api_url, json=payload) as response:
            response.raise_for_status()
            async for fragment in response.aiter_text():
                if not fragment:
                    continue
                accumulated += fragment
                self._buffers[placeholder.id] = accumulated
                if on_update is not None:
                    on_update(self._snapshot(placeholder))
        return accumulated

    def _finish(self, placeholder: AssistantMessage, text: str) -> AssistantMessage:
        final = placeholder.model_copy(update={"text": text})
        index = next(i for i, m in enumerate(self._log) if m.id == placeholder.id)
        self._log[index] = final
        self._buffers.pop(placeholder.id, None)
        self.state = SessionState.IDLE
        return final

    def _snapshot(self, message: AssistantMessage) -> AssistantMessage:
        if message.id in self._buffers:
            return message.model_copy(update={"text": self._buffers[message.id]})
        return message

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client
