from __future__ import annotations

from typing import Any, Dict, Optional, TypedDict

# Stored form of any schema model: snake_case keys, always carrying "id".
RecordDict = Dict[str, Any]


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    Stored form of a Todo record.

    Fields:
    - id: generated UUID4 string
    - title: short title (trimmed on input via schemas)
    - content: optional body; empty input is stored as None
    - owner: caller subject, or None for guest-path writes
    - created_at: UTC ISO8601 timestamp with a trailing 'Z'
    - updated_at: equal to created_at for freshly created records
    """

    id: str
    title: str
    content: Optional[str]
    owner: Optional[str]
    created_at: str
    updated_at: str
