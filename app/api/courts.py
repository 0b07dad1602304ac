from datetime import datetime

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from app.courts import COURT_TO_BAY, to_court_id
from app.models.schemas import MessageType, UserMessage
from app.services.user_message import user_message_service

router = APIRouter(prefix="/courts", tags=["courts"])


class CourtMessageResponse(BaseModel):
    type: MessageType
    first_name: str
    last_name: str
    booking_id: str
    court_id: str
    bay: int | None = None
    start_time: datetime
    end_time: datetime
    headline: str
    body: str


def display_text(message: UserMessage) -> tuple[str, str]:
    """Return the (headline, body) texts shown on the bay display for a message."""
    if message.type == MessageType.START:
        return (
            f"Hej {message.first_name}, välkommen till Sweden Indoor Golf!",
            "Dax för en bra runda :) Kolla in affischen nedan om du har problem!",
        )
    headline = f"{message.first_name}, din tid är snart slut!"
    if message.type == MessageType.END_FREE:
        return headline, "Banan är ledig nästa tid. Boka mer i Matchi?"
    return headline, "Nästa spelare kommer strax. Dags att börja avsluta :)"


@router.get("/{court}/message", response_model=CourtMessageResponse)
async def get_court_message(court: str, now: datetime | None = None) -> CourtMessageResponse:
    """
    Get the message the display for a bay should show right now.

    Args:
        court: Bay number ("1" to "8") or a MATCHi court id.
        now: Optional reference time, for previewing a display. Naive values
            are read in the facility timezone.

    Raises:
        HTTPException 404: If there is nothing to show.
    """
    court_id = to_court_id(court)
    message = await user_message_service.show_user_message_for_court(
        court_id, now
    )
    if not message:
        raise HTTPException(status_code=404, detail="No message for court")

    headline, body = display_text(message)
    return CourtMessageResponse(
        type=message.type,
        first_name=message.first_name,
        last_name=message.last_name,
        booking_id=message.booking.booking_id,
        court_id=court_id,
        bay=COURT_TO_BAY.get(court_id),
        start_time=message.booking.start_time,
        end_time=message.booking.end_time,
        headline=headline,
        body=body,
    )
