from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager, suppress
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from chatroom.core import ChatError, StorageError, ValidationError, parse_limit
from chatroom.reaper import PresenceReaper
from chatroom.service import ChatService
from chatroom.store import Storage, open_storage
from config.settings import Settings, get_settings


settings = get_settings()

log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
logging.basicConfig(level=log_level, format="[%(asctime)s] %(levelname)s - %(message)s")
logger = logging.getLogger("chatroom")
logger.setLevel(log_level)


def _http_error(exc: ChatError) -> HTTPException:
    if isinstance(exc, StorageError):
        # Full traceback goes to the server log; the caller only sees the summary
        logger.exception("Storage failure: %s", exc)
    else:
        logger.info("Rejected request (%s): %s", exc.status_code, exc)
    return HTTPException(status_code=exc.status_code, detail=str(exc))


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise _http_error(ValidationError("Request body must be JSON")) from exc


def get_service(request: Request) -> ChatService:
    return request.app.state.service


def create_app(
    config: Optional[Settings] = None,
    *,
    storage: Optional[Storage] = None,
    now: Optional[Callable] = None,
    run_reaper: bool = True,
) -> FastAPI:
    """Build the chat API.

    ``storage`` and ``now`` are injected by tests; otherwise storage is opened
    from ``config.storage_uri`` when the app starts.
    """
    config = config or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = storage or await open_storage(config.storage_uri, config.storage_name)
        app.state.service = ChatService(store, now=now)
        app.state.reaper = PresenceReaper(
            store,
            interval=config.inactive_check_freq,
            timeout=config.inactive_timeout,
            now=now,
        )
        reaper_task = asyncio.create_task(app.state.reaper.run()) if run_reaper else None
        try:
            yield
        finally:
            if reaper_task is not None:
                reaper_task.cancel()
                with suppress(asyncio.CancelledError):
                    await reaper_task
            if storage is None:
                await store.close()

    app = FastAPI(title="Chat Room API", version="1.0.0", lifespan=lifespan)

    # CORS: allow local frontend during development
    if config.app_env.lower() in {"dev", "development", "local"}:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.post("/participants", status_code=201, response_class=PlainTextResponse)
    async def register_participant(
        request: Request, service: ChatService = Depends(get_service)
    ) -> str:
        body = await _json_body(request)
        if not isinstance(body, dict):
            raise _http_error(ValidationError("payload must be an object"))
        try:
            await service.register(body.get("name"))
        except ChatError as e:
            raise _http_error(e)
        return "Created"

    @app.get("/participants")
    async def list_participants(service: ChatService = Depends(get_service)) -> List[Dict[str, Any]]:
        try:
            return await service.list_participants()
        except ChatError as e:
            raise _http_error(e)

    @app.post("/messages", status_code=201, response_class=PlainTextResponse)
    async def send_message(
        request: Request,
        user: Optional[str] = Header(default=None),
        service: ChatService = Depends(get_service),
    ) -> str:
        body = await _json_body(request)
        try:
            doc = await service.send_message(user, body)
        except ChatError as e:
            raise _http_error(e)
        logger.info("Message stored: from=%s to=%s type=%s", doc["from"], doc["to"], doc["type"])
        return "Created"

    @app.get("/messages")
    async def get_messages(
        limit: Optional[str] = None,
        user: Optional[str] = Header(default=None),
        service: ChatService = Depends(get_service),
    ) -> List[Dict[str, Any]]:
        try:
            return await service.get_messages(user, parse_limit(limit))
        except ChatError as e:
            raise _http_error(e)

    @app.post("/status", response_class=PlainTextResponse)
    async def refresh_status(
        user: Optional[str] = Header(default=None),
        service: ChatService = Depends(get_service),
    ) -> str:
        try:
            await service.refresh_status(user)
        except ChatError as e:
            raise _http_error(e)
        return "OK"

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
