from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime
from pathlib import Path

from client.models import AssistantMessage
from client.notebook import Notebook
from client.session import APOLOGY, AssistantSession
from client.storage import NotebookStorage
from config.settings import get_settings


CHAT_HELP = """\
  > text       log a sent message
  < text       log a received message
  ? question   ask the assistant
  /history     show the notebook
  /clear       clear the notebook
  /quit        exit"""


def _stream_printer():
    shown = 0

    def on_update(message: AssistantMessage) -> None:
        nonlocal shown
        print(message.text[shown:], end="", flush=True)
        shown = len(message.text)

    return on_update


def print_history(notebook: Notebook) -> None:
    if not len(notebook):
        print("(no messages yet)")
        return
    for message in notebook.messages:
        arrow = ">" if message.direction.value == "sent" else "<"
        print(f"[{format_time(message.timestamp)}] {arrow} {message.text}")


def format_time(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp / 1000).strftime("%H:%M:%S")


async def chat_loop(notebook: Notebook, session: AssistantSession) -> None:
    print(CHAT_HELP)
    while True:
        try:
            line = input("chat> ").strip()
        except EOFError:
            break

        if not line:
            continue
        if line == "/quit":
            break
        if line == "/history":
            print_history(notebook)
        elif line == "/clear":
            notebook.clear()
            print("Notebook cleared.")
        elif line[0] == ">":
            notebook.send(line[1:])
        elif line[0] == "<":
            notebook.receive(line[1:])
        elif line[0] == "?":
            final = await session.ask(line[1:], notebook, on_update=_stream_printer())
            if final is None:
                continue
            if final.text == APOLOGY:
                print(f"\n{APOLOGY}")
            else:
                print()
        else:
            print(CHAT_HELP)


async def _run_chat(args) -> None:
    settings = get_settings()
    data_dir = Path(args.data_dir).expanduser() if args.data_dir else settings.data_dir
    notebook = Notebook(NotebookStorage(data_dir))
    async with AssistantSession(api_url=args.url or settings.api_url) as session:
        await chat_loop(notebook, session)


def _serve(args) -> None:
    import uvicorn

    uvicorn.run("app.main:app", host=args.host, port=args.port, reload=args.reload)


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="chat-helper", description="Personal chat notebook with an AI helper"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the assistant API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true")

    chat_parser = subparsers.add_parser("chat", help="Open the notebook in the terminal")
    chat_parser.add_argument("--url", default=None, help="Chat endpoint URL")
    chat_parser.add_argument("--data-dir", default=None, help="Where the notebook is stored")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, get_settings().log_level, logging.INFO),
        format="[%(asctime)s] %(levelname)s - %(message)s",
    )

    if args.command == "serve":
        _serve(args)
    elif args.command == "chat":
        asyncio.run(_run_chat(args))


if __name__ == "__main__":
    main()
