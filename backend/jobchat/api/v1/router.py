from fastapi import APIRouter

from jobchat.api.v1 import chats, devices, notifications

api_v1_router = APIRouter()

api_v1_router.include_router(chats.router, prefix="/chats", tags=["chats"])
api_v1_router.include_router(devices.router, prefix="/devices", tags=["devices"])
api_v1_router.include_router(
    notifications.router, prefix="/notifications", tags=["notifications"]
)
