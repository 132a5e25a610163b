from typing import Any, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def api_response(
    *,
    data: Optional[Any] = None,
    message: str = "Operation successful",
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    """
    Single source of truth for ALL API responses.
    `succeeded` follows the status code; `data` is left out when there is none.
    """
    content = {
        "succeeded": status_code < 400,
        "message": message,
    }
    if data is not None:
        content["data"] = jsonable_encoder(data)

    return JSONResponse(status_code=status_code, content=content)
