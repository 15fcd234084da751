"""
Standard JSON envelope: {success, message, data?, errors?, meta?}
"""

from typing import Any, Dict, List, Optional
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel
from starlette import status


def _encode(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    if isinstance(data, list):
        return [_encode(item) for item in data]
    if isinstance(data, dict):
        return {key: _encode(value) for key, value in data.items()}
    return jsonable_encoder(data)


def success_response(
    data: Any = None,
    message: str = "Success",
    status_code: int = status.HTTP_200_OK,
    meta: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        content["data"] = _encode(data)
    if meta is not None:
        content["meta"] = meta
    return JSONResponse(status_code=status_code, content=content)


def created_response(data: Any, message: str = "Created successfully") -> JSONResponse:
    return success_response(data, message, status.HTTP_201_CREATED)


def no_content_response() -> Response:
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def paginated_response(
    data: List[Any],
    total: int,
    page: int,
    limit: int,
    message: str = "Success",
) -> JSONResponse:
    total_pages = (total + limit - 1) // limit if limit else 0
    return success_response(
        data,
        message,
        meta={"page": page, "limit": limit, "total": total, "totalPages": total_pages},
    )


def error_response(
    message: str,
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    errors: Optional[Dict[str, List[str]]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content, headers=headers)
