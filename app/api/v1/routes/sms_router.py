from fastapi import APIRouter, Depends

from app.core.dependencies import get_sms_dispatcher

router = APIRouter()


# Telemetry reads against the gateway, a null result is not an error
@router.get("/balance")
async def sms_balance(dispatcher=Depends(get_sms_dispatcher)):
    data = await dispatcher.check_balance()
    return {"success": True, "data": data}


@router.get("/status/{message_id}")
async def sms_status(message_id: str, dispatcher=Depends(get_sms_dispatcher)):
    data = await dispatcher.get_status(message_id)
    return {"success": True, "data": data}
