from __future__ import annotations

from typing import Any, Optional, cast

import msgpack

from edgecache._core._headers import Headers
from edgecache._core.models import StoredResponse

PACKING_VERSION = 1


def pack(value: StoredResponse) -> bytes:
    return cast(
        bytes,
        msgpack.packb(
            {
                "v": PACKING_VERSION,
                "status_code": value.status_code,
                "headers": value.headers.multi_items(),
                "body": value.body,
                "created_at": value.created_at,
            }
        ),
    )


def unpack(value: Optional[bytes]) -> Optional[StoredResponse]:
    if value is None:
        return None
    data: dict[str, Any] = msgpack.unpackb(value)
    if data.get("v") != PACKING_VERSION:
        raise ValueError(f"Unsupported packing version: {data.get('v')!r}")
    return StoredResponse(
        status_code=data["status_code"],
        headers=Headers([(key, header_value) for key, header_value in data["headers"]]),
        body=data["body"],
        created_at=data["created_at"],
    )
