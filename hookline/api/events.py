"""Event ingestion — producers report domain events here."""

from fastapi import APIRouter, BackgroundTasks, Depends

from hookline.api.deps import get_current_org, get_dispatcher
from hookline.schemas import TriggerAccepted, TriggerRequest
from hookline.services.webhook_dispatcher import WebhookDispatcher

router = APIRouter(prefix="/events", tags=["events"])


@router.post("/", response_model=TriggerAccepted, status_code=202)
async def trigger_event(
    data: TriggerRequest,
    background_tasks: BackgroundTasks,
    org_id: str = Depends(get_current_org),
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
):
    """Accept an event and fan it out after the response is sent.

    An event nobody subscribes to is accepted and silently dropped.
    """
    background_tasks.add_task(dispatcher.trigger, org_id, data.event_type, data.payload)
    return TriggerAccepted(event_type=data.event_type)
