from fastapi import APIRouter, Depends, HTTPException

from jobchat.api.deps import get_core
from jobchat.core import ClientCore
from jobchat.schemas.device import DeviceRegistration, PushStatus

router = APIRouter()


@router.get("/registration", response_model=DeviceRegistration)
async def registration_status(core: ClientCore = Depends(get_core)):
    """Last registration outcome, for on-device diagnostics."""
    return core.registration.snapshot()


@router.post("/registration/retry", response_model=DeviceRegistration)
async def retry_registration(core: ClientCore = Depends(get_core)):
    return await core.registration.retry()


@router.delete("/registration")
async def unregister_device(core: ClientCore = Depends(get_core)):
    return {"unregistered": await core.registration.unregister()}


@router.get("/push-status", response_model=PushStatus)
async def push_status(core: ClientCore = Depends(get_core)):
    status = await core.registration.push_status()
    if status is None:
        raise HTTPException(status_code=502, detail="Push status unavailable")
    return status


@router.post("/logout")
async def logout(core: ClientCore = Depends(get_core)):
    """Unregister the device token and close every open chat."""
    await core.logout()
    return {"message": "Logged out"}
