"""Success envelope shared by every endpoint: {status, message, data?}"""
from typing import Any, Dict, Optional

from pydantic import BaseModel

from app.schemas.common import dump


def _serialize(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return dump(value)
    if isinstance(value, dict):
        return {key: _serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    return value


def success_response(data: Optional[Any] = None, message: str = "Success") -> Dict[str, Any]:
    body: Dict[str, Any] = {"status": "success", "message": message}
    if data is not None:
        body["data"] = _serialize(data)
    return body
