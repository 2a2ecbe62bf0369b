# FILE: hmis/schemas/common.py
from __future__ import annotations

from typing import Any, Dict


def page_meta(total: int, page: int, limit: int) -> Dict[str, Any]:
    pages = (total + limit - 1) // limit if limit else 0
    return {"total": total, "page": page, "limit": limit, "pages": pages}
