"""Standalone chat relay server.

Usage::

    chatroom

    # Custom port / log level:
    PORT=9000 LOG_LEVEL=DEBUG chatroom

Environment variables:
    HOST                — Bind address (default: 0.0.0.0)
    PORT                — Server port (default: 3000)
    LOG_LEVEL           — Root log level (default: INFO)
    STATIC_DIR          — Directory with client assets (default: packaged client)
    OPENAI_API_KEY      — Enables the @bot responder
    OPENAI_MODEL        — Responder model (default: gpt-4o)
    MESSAGE_SINK        — memory | mongodb | none
    MEMORY_SINK_MAX_RECORDS — Records kept by the memory sink (default: 1000, "none" for unbounded)
    MONGODB_CONNECTION  — MongoDB URI, selects the mongodb sink by default

Loads .env from the current working directory or any parent directory.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from .config import RelayConfig
from .persistence import MemoryMessageSink, MessageSink, NullMessageSink
from .responder import Responder, UnavailableResponder

logger = logging.getLogger(__name__)


def build_sink(config: RelayConfig) -> MessageSink:
    """Create the message sink selected by ``config.message_sink``."""
    if config.message_sink == RelayConfig.SINK_MONGODB:
        from .persistence import MongoDBMessageSink
        return MongoDBMessageSink(
            mongo_uri=config.mongo_uri,
            mongo_db=config.mongo_db,
            mongo_collection=config.mongo_collection,
        )
    if config.message_sink == RelayConfig.SINK_NONE:
        return NullMessageSink()
    return MemoryMessageSink(max_records=config.memory_max_records)


def build_responder(config: RelayConfig) -> Responder:
    """Create the OpenAI responder, or an always-failing one if it cannot be configured."""
    from .responder import OpenAIResponder
    try:
        return OpenAIResponder(
            api_key=config.openai_api_key,
            model=config.openai_model,
            base_url=config.openai_base_url,
            api_type=config.openai_api_type,
            api_version=config.openai_api_version,
            timeout=config.openai_timeout,
        )
    except ValueError as e:
        logger.warning(f"[BOT] Responder disabled: {e}")
        return UnavailableResponder(str(e))


# ── FastAPI app factory ──────────────────────────────────────────

def create_app(
    config: Optional[RelayConfig] = None,
    *,
    sink: Optional[MessageSink] = None,
    responder: Optional[Responder] = None,
):
    """Create the FastAPI application.

    Also called by uvicorn via the factory=True flag, in which case the
    configuration is read from the environment.
    """
    from fastapi import FastAPI
    from fastapi.staticfiles import StaticFiles

    from .broadcast_router import BroadcastRouter
    from .server import build_ws_router, get_static_path
    from .session_registry import SessionRegistry

    if config is None:
        from dotenv import load_dotenv, find_dotenv
        load_dotenv(find_dotenv(usecwd=True))
        config = RelayConfig.from_env()

    router = BroadcastRouter(
        registry=SessionRegistry(),
        sink=sink if sink is not None else build_sink(config),
        responder=responder if responder is not None else build_responder(config),
        bot_name=config.bot_name,
        bot_trigger=config.bot_trigger,
    )

    @asynccontextmanager
    async def lifespan(_a):
        logger.info(f"Relay ready (sink: {router.sink.name}, responder: {router.responder.name})")
        yield
        # Let in-flight bot replies and writes finish before closing clients
        await router.drain()
        await router.sink.close()
        await router.responder.close()

    _app = FastAPI(title="chatroom", docs_url=None, redoc_url=None, lifespan=lifespan)
    _app.state.config = config
    _app.state.router = router

    _app.include_router(build_ws_router(router))
    _app.mount("/", StaticFiles(directory=config.static_dir or get_static_path(), html=True), name="static")

    return _app


# ── Entry point ──────────────────────────────────────────────────

def main():
    """Load .env, configure logging, and start the server."""
    # find_dotenv() searches upward through parent directories
    from dotenv import load_dotenv, find_dotenv
    load_dotenv(find_dotenv(usecwd=True))

    import uvicorn

    config = RelayConfig.from_env()

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )

    print(f"\n  chatroom → http://localhost:{config.port}\n")
    uvicorn.run(
        "chatroom.standalone:create_app",
        factory=True,
        host=config.host,
        port=config.port,
    )


if __name__ == "__main__":
    main()
