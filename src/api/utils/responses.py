"""JSON responses rendered with orjson.

orjson serializes ``date`` values as ``YYYY-MM-DD`` natively, which is the
wire format of record dates.
"""

from typing import Any

import orjson
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ORJSONResponse(JSONResponse):
    """Default response class of the application, using orjson."""

    media_type = "application/json"

    def render(self, content: Any) -> bytes:  # noqa: ANN401 - any JSON-serializable content
        """Render the content as JSON bytes with sorted keys."""
        if isinstance(content, BaseModel):
            content = content.model_dump(mode="json")

        return orjson.dumps(content, option=orjson.OPT_SORT_KEYS)
