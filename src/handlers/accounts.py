"""Signup, profile and subscription endpoints."""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from src.handlers.deps import current_user_id, get_server

router = APIRouter(tags=["accounts"])


class SignupBody(BaseModel):
    email: str
    password: str
    name: str


class SubscriptionBody(BaseModel):
    tier: str


@router.post("/signup")
async def signup(body: SignupBody, request: Request):
    user, profile = await get_server(request).accounts.signup(body.email, body.password, body.name)
    return {"success": True, "user": user, "profile": profile.to_dict()}


@router.get("/profile")
async def get_profile(request: Request, user_id: str = Depends(current_user_id)):
    profile = await get_server(request).accounts.get_profile(user_id)
    return {"profile": profile.to_dict()}


@router.post("/subscription")
async def update_subscription(
    body: SubscriptionBody,
    request: Request,
    user_id: str = Depends(current_user_id),
):
    profile = await get_server(request).accounts.update_subscription(user_id, body.tier)
    return {"success": True, "profile": profile.to_dict()}
