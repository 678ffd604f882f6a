"""Response envelope shared by every successful endpoint.

    {"statusCode": 200, "data": {...}, "message": "...", "success": true}

Field names on the wire are camelCase; Python code stays snake_case.
"""

from typing import Any

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel
from pydantic.alias_generators import to_camel

CAMEL_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
}


class ApiResponse(BaseModel):
    status_code: int = 200
    data: Any = None
    message: str = "Success"
    success: bool = True

    model_config = CAMEL_CONFIG

    @classmethod
    def build(cls, data: Any, message: str, status_code: int = 200) -> "ApiResponse":
        # Nested schemas are encoded up front so their aliases survive.
        return cls(
            status_code=status_code,
            data=jsonable_encoder(data, by_alias=True),
            message=message,
            success=status_code < 400,
        )
