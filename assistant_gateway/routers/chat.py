"""
AI Chat Router - the single POST /ai-chat endpoint.

HTTP handling only: load the provider chain and system prompt from storage,
hand the request to the ModeDispatcher, and turn its result into either an
event stream or a JSON body. Errors raised by the dispatcher are
GatewayErrors and are rendered by the handlers registered in main.py.

    POST /ai-chat
        │
        ▼
    ModeDispatcher ──► STREAM ──► StreamingResponse (text/event-stream)
                   └─► JSON ────► JSONResponse (application/json)
"""

import logging
import uuid

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.orm import Session

from assistant_gateway.ai.relay import STREAM_HEADERS, relay_stream
from assistant_gateway.db.session import get_db
from assistant_gateway.deps import get_client_id, get_dispatcher
from assistant_gateway.schemas.chat import ChatRequest, ErrorResponse
from assistant_gateway.services.chat_service import ChatMode, ModeDispatcher
from assistant_gateway.services.provider_config_service import provider_config_service
from assistant_gateway.services.site_content_service import site_content_service


# ---------------------------------------------------------------------------
# LOGGER SETUP
# ---------------------------------------------------------------------------
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# ROUTER SETUP
# ---------------------------------------------------------------------------
router = APIRouter(tags=["ai-chat"])


# ---------------------------------------------------------------------------
# ENDPOINTS
# ---------------------------------------------------------------------------

@router.post(
    "/ai-chat",
    responses={
        400: {"model": ErrorResponse},
        402: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def ai_chat(
    request: ChatRequest,
    db: Session = Depends(get_db),
    client_id: str = Depends(get_client_id),
    dispatcher: ModeDispatcher = Depends(get_dispatcher),
):
    """
    Ask the assistant.

    **Modes:**
    - `chat` (default): streamed reply from the first working provider
    - `extract`: streamed deep-analysis report
    - `image-gen`: `{text, images}`
    - `video-gen`: `{text, videoUrl, prompt}`
    - `suggest`: `{suggestions}`
    - `testMode: true`: connectivity probe, `{status, message, provider, model}`
    """
    request_id = uuid.uuid4().hex[:8]
    mode = ChatMode.resolve(request.mode, request.test_mode)

    configs = provider_config_service.list_configs(db)
    system_prompt = site_content_service.build_system_prompt(db, language=request.language)
    test_config = None
    if mode == ChatMode.TEST and request.test_config is not None:
        test_config = provider_config_service.resolve_test_config(db, request.test_config)

    result = await dispatcher.dispatch(
        request,
        client_id=client_id,
        configs=configs,
        system_prompt=system_prompt,
        request_id=request_id,
        test_config=test_config,
    )

    if result.is_stream:
        logger.info(f"[{request_id}] streaming {result.mode.value} reply from {result.outcome.provider}")
        return StreamingResponse(
            relay_stream(result.outcome),
            media_type="text/event-stream",
            headers=STREAM_HEADERS,
        )
    return JSONResponse(content=result.payload)
