from __future__ import annotations

import re


def _snake_case(text: str) -> str:
    """
    Lowercase, non-alphanumerics -> underscores (`"Phone Number"` -> `"phone_number"`).
    """

    return re.sub(r"[^a-z0-9]+", "_", str(text or "").strip().lower()).strip("_")


def _truncate(text: str, limit: int = 240) -> str:
    t = str(text or "")
    return t if len(t) <= limit else t[: limit - 3] + "..."


__all__ = ["_snake_case", "_truncate"]
