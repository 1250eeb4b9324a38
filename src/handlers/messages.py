"""Contact message endpoints."""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from src.handlers.deps import current_user_id, get_server

router = APIRouter(tags=["messages"])


class SendMessageBody(BaseModel):
    recipientId: str
    listingId: str
    content: str
    meetupLocation: str | None = None


@router.post("/messages")
async def send_message(
    body: SendMessageBody,
    request: Request,
    user_id: str = Depends(current_user_id),
):
    message = await get_server(request).messages.send(
        sender_id=user_id,
        recipient_id=body.recipientId,
        listing_id=body.listingId,
        content=body.content,
        meetup_location=body.meetupLocation,
    )
    return {"success": True, "message": message.to_dict()}


@router.get("/messages/{listing_id}/{other_user_id}")
async def get_conversation(
    listing_id: str,
    other_user_id: str,
    request: Request,
    user_id: str = Depends(current_user_id),
):
    messages = await get_server(request).messages.conversation(user_id, other_user_id, listing_id)
    return {"messages": [m.to_dict() for m in messages]}
