"""Response envelope helpers.

Learn: Every JSON body carries a top-level `status`: "OK" on success,
"NG" on failure (see errors.ApiError.to_dict for the failure side).
204 responses carry no body at all.
"""

from typing import Any

from fastapi import Response


def ok(**payload: Any) -> dict[str, Any]:
    return {"status": "OK", **payload}


def no_content() -> Response:
    return Response(status_code=204)
