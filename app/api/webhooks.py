import logging

from fastapi import APIRouter, Header, HTTPException

from app.models.schemas import MatchiWebhook
from app.services.webhook_service import UnknownWebhookEventError, webhook_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])


@router.post("/hook")
async def handle_matchi_webhook(
    webhook: MatchiWebhook,
    x_matchi_signature: str | None = Header(None, alias="x-matchi-signature"),
) -> dict[str, str]:
    """
    Receive a booking lifecycle event from MATCHi.

    The signature header must be present; its value is only logged. Storage
    failures are logged and acknowledged with 200 so MATCHi does not keep
    redelivering an event this service cannot store.

    Raises:
        HTTPException 400: Missing signature header or unknown event type.
        HTTPException 422: The event detail does not match its event type.
    """
    if not x_matchi_signature:
        raise HTTPException(status_code=400, detail="Missing x-matchi-signature header")

    logger.info(f"MATCHi hook received, signature={x_matchi_signature}")

    try:
        await webhook_service.handle_webhook(webhook)
    except UnknownWebhookEventError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Error handling MATCHi webhook {webhook.id}: {e}")
        return {"status": "error"}

    return {"status": "received"}
