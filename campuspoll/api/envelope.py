from typing import Any, Optional
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from bson import ObjectId


def _encode(data: Any) -> Any:
    return jsonable_encoder(data, custom_encoder={ObjectId: str})


def ok(data: Any = None, status_code: int = 200, message: Optional[str] = None) -> JSONResponse:
    """Success envelope: {success: true, data[, message]}"""
    body = {"success": True, "data": _encode(data)}
    if message:
        body["message"] = message
    return JSONResponse(status_code=status_code, content=body)


def fail(status_code: int, message: Optional[str] = None, error: Optional[str] = None, data: Any = None) -> JSONResponse:
    """Failure envelope: {success: false, message|error[, data]}"""
    body = {"success": False}
    if message is not None:
        body["message"] = message
    if error is not None:
        body["error"] = error
    if data is not None:
        body["data"] = _encode(data)
    return JSONResponse(status_code=status_code, content=body)
