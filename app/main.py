from __future__ import annotations

import logging
from typing import AsyncIterator, List, Literal

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from agent.agent import build_llm, stream_answer
from agent.core.memory import build_prompt
from config.settings import get_settings


settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="[%(asctime)s] %(levelname)s - %(message)s",
)
logger = logging.getLogger("chat_helper")

GENERIC_ERROR = "Failed to get AI response"
MISSING_KEY_ERROR = (
    "API key not configured. Please add GOOGLE_API_KEY (or GEMINI_API_KEY) to .env"
)

app = FastAPI(title="Chat Helper Assistant", version="1.0.0")

# CORS: allow local frontend during development
if settings.is_development:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


class NotebookEntry(BaseModel):
    type: Literal["sent", "received"] = Field(..., description="'sent' or 'received'")
    text: str
    timestamp: int = Field(0, description="Epoch milliseconds")


class DialogueTurn(BaseModel):
    role: Literal["user", "assistant"] = Field(..., description="'user' or 'assistant'")
    text: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: List[NotebookEntry] = Field(
        default_factory=list,
        description="Full notebook log (client-managed)",
    )
    ai_messages: List[DialogueTurn] = Field(
        default_factory=list,
        alias="aiMessages",
        description="Assistant dialogue so far, current question last",
    )
    user_question: str = Field(..., alias="userQuestion", description="User's latest question")


def error_response(message: str, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(RequestValidationError)
async def invalid_payload(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Rejected chat payload: %s validation errors", len(exc.errors()))
    return error_response(GENERIC_ERROR)


async def _encoded(fragments: AsyncIterator[str]) -> AsyncIterator[bytes]:
    async for text in fragments:
        yield text.encode("utf-8")


@app.post("/api/chat")
async def chat(req: ChatRequest):
    settings = get_settings()
    if not settings.google_api_key:
        logger.error("Chat request refused: no API key configured")
        return error_response(MISSING_KEY_ERROR)

    try:
        logger.info(
            "Incoming chat: model=%s notebook=%s dialogue=%s question_len=%s",
            settings.gemini_model,
            len(req.messages),
            len(req.ai_messages),
            len(req.user_question),
        )
        prompt = build_prompt(
            [m.model_dump() for m in req.messages],
            [t.model_dump() for t in req.ai_messages],
            req.user_question,
        )
        llm = build_llm(settings)
    except Exception as e:
        logger.exception("Chat setup failed: %s", e)
        return error_response(GENERIC_ERROR)

    return StreamingResponse(
        _encoded(stream_answer(llm, prompt)),
        media_type="text/plain; charset=utf-8",
    )


@app.get("/health")
def health():
    return {"status": "ok"}
