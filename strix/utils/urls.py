"""
URL utilities for Strix.
"""

import re

_COLON_PARAM = re.compile(r"^:([A-Za-z_][A-Za-z0-9_]*)$")


def join_paths(*parts: str) -> str:
    """
    Join URL path segments with exactly one slash between them.

    Handles:
    - Multiple slashes (//) -> /
    - Trailing/leading slashes (trailing is trimmed)
    - Empty segments
    - ``:name`` segments, normalised to ``{name}``

    Example:
        join_paths("/api/", "/v1", "users/:id") -> "/api/v1/users/{id}"
    """
    segments = []

    for part in parts:
        if not part:
            continue
        for segment in part.split("/"):
            if not segment:
                continue
            match = _COLON_PARAM.match(segment)
            segments.append("{%s}" % match.group(1) if match else segment)

    return "/" + "/".join(segments)
