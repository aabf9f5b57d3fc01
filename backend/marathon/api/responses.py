"""
Bible Marathon API Response Envelope
"""
from datetime import datetime, timezone
from typing import Any, Dict
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()

def success_response(data: Any = None, message: str = "OK") -> Dict[str, Any]:
    """Envelope for a successful request"""
    return {
        "success": True,
        "message": message,
        "data": data,
        "timestamp": _timestamp()
    }

def error_response(status_code: int, message: str, data: Any = None) -> JSONResponse:
    """Envelope for a failed request"""
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({
            "success": False,
            "message": message,
            "data": data,
            "timestamp": _timestamp()
        })
    )
