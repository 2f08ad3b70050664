# movie_bot/webhook.py

import secrets
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from telegram import Update
from telegram.ext import Application

from .config import logger

LIVENESS_TEXT = "🤖 Telegram Movie Bot is running!"


def webhook_path(token: str) -> str:
    return f"/bot{token}"


def create_app(application: Application, token: str, webhook_url: str) -> FastAPI:
    """
    Builds the HTTP surface for webhook mode.

    Telegram posts updates to `/bot<token>`; each one is queued on the PTB
    application and acknowledged right away, so slow handlers never make
    Telegram retry a delivery.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await application.initialize()
        if application.post_init:
            await application.post_init(application)
        await application.start()

        target = f"{webhook_url.rstrip('/')}{webhook_path(token)}"
        await application.bot.set_webhook(url=target, allowed_updates=Update.ALL_TYPES)
        logger.info(f"[WEBHOOK] Webhook registered at {webhook_url.rstrip('/')}/bot<token>.")
        try:
            yield
        finally:
            logger.info("[WEBHOOK] Stopping application...")
            await application.stop()
            if application.post_shutdown:
                await application.post_shutdown(application)
            await application.shutdown()

    app = FastAPI(lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/", response_class=PlainTextResponse)
    async def index() -> str:
        return LIVENESS_TEXT

    @app.post("/bot{path_token}")
    async def receive_update(path_token: str, request: Request) -> dict[str, Any]:
        if not secrets.compare_digest(path_token, token):
            raise HTTPException(status_code=404)

        try:
            payload = await request.json()
            update = Update.de_json(payload, application.bot)
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            # Telegram would redeliver on an error status; drop the body instead.
            logger.warning(f"[WEBHOOK] Discarding undecodable update: {e}")
            return {"ok": True}

        if update is None:
            logger.warning("[WEBHOOK] Discarding empty update body.")
            return {"ok": True}

        await application.update_queue.put(update)
        return {"ok": True}

    return app


def run_webhook_server(
    application: Application, token: str, webhook_config: dict[str, Any]
) -> None:
    """Serves the webhook app under uvicorn until the process is stopped."""
    app = create_app(application, token, webhook_config["url"])
    port = int(webhook_config["port"])
    logger.info(f"[WEBHOOK] Listening on 0.0.0.0:{port}")
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
