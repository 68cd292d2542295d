import json
from typing import Optional

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from stravach.dependencies import get_commands, get_workflow
from stravach.logging_config import get_logger
from stravach.schemas.telegram import TelegramUpdate, TelegramWebhookResponse
from stravach.services.command_service import CommandService
from stravach.services.rename_workflow import RenameWorkflow
from stravach.services.result import Result

logger = get_logger("telegram_webhook")

router = APIRouter()


async def parse_telegram_update(request: Request) -> Optional[dict]:
    """
    Parse Telegram update with tolerant decoding to avoid utf-8 crashes.
    Returns dict or None.
    """
    try:
        return await request.json()
    except ValueError as e:
        logger.warning(f"Standard request.json() failed: {e}, fallback decoding")

    raw = await request.body()
    for enc in ("utf-8", "latin-1"):
        try:
            decoded = raw.decode(enc, errors="replace")
            return json.loads(decoded)
        except ValueError:
            continue

    logger.error("Failed to decode Telegram webhook payload after fallbacks")
    return None


@router.post("/telegram-webhook", response_model=TelegramWebhookResponse)
async def handle_telegram_webhook(
    request: Request,
    workflow: RenameWorkflow = Depends(get_workflow),
    commands: CommandService = Depends(get_commands),
):
    """
    Handle Telegram webhook updates:
    - Callback queries (button clicks) -> rename workflow
    - Slash commands -> command service
    - Other text -> custom prompt, if the chat asked for one
    """
    try:
        body = await parse_telegram_update(request)
        if body is None:
            return TelegramWebhookResponse(success=False, message="Invalid telegram payload")

        logger.debug(f"Telegram webhook received: {body}")

        update = TelegramUpdate(**body)
        # Workflow calls block on Strava and the LLM; keep them off the event loop
        result = await run_in_threadpool(dispatch_update, update, workflow, commands)
        if result is None:
            return TelegramWebhookResponse(success=True, message="No actionable content")

        return TelegramWebhookResponse(success=result.ok, message=result.error, error_code=result.error_code)

    except Exception as e:
        logger.error(f"Telegram webhook error: {e}", exc_info=True)
        return TelegramWebhookResponse(success=False, message=str(e))


def dispatch_update(update: TelegramUpdate, workflow: RenameWorkflow, commands: CommandService) -> Optional[Result]:
    callback = update.callback_query
    if callback:
        logger.info(f"Callback: chat_id={callback.chat_id}, data={callback.data}")
        return workflow.handle_callback(callback.chat_id, callback.data, callback.id)

    message = update.message
    if not message or not message.text:
        return None

    # Skip bot messages
    if message.from_user and message.from_user.is_bot:
        return None

    chat_id = message.chat.id
    if message.text.startswith("/"):
        username = message.from_user.username if message.from_user else None
        return commands.handle(chat_id, message.text, username)

    return workflow.handle_text(chat_id, message.text)
