from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status

from ..auth import get_identity, get_identity_policy
from ..batch import BatchResult, BulkCreator
from ..identity import Identity, IdentityPolicy
from ..schemas import BatchCreateRequest, BatchCreateResponse, ItemFailureOut, TodoOut
from ..settings import get_settings
from ..stores import RecordStore, get_store

router = APIRouter(
    prefix="/api/v1/todos",
    tags=["todos"],
)


def get_bulk_creator(
    store: RecordStore = Depends(get_store),
    policy: IdentityPolicy = Depends(get_identity_policy),
) -> BulkCreator:
    """
    Dependency building a BulkCreator for the Todo model from settings.
    """
    settings = get_settings()
    return BulkCreator(
        store,
        table="Todo",
        policy=policy,
        max_items=settings.batch_max_items,
        max_workers=settings.batch_max_workers,
    )


def _to_response(result: BatchResult) -> BatchCreateResponse:
    return BatchCreateResponse(
        created_records=[TodoOut(**record) for record in result.created_records],
        failed_count=result.failed_count,
        failures=[
            ItemFailureOut(original_index=f.original_index, error_description=f.error_description)
            for f in result.failures
        ],
    )


# PUBLIC_INTERFACE
@router.post(
    "/batch",
    response_model=BatchCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Todos in batch",
    description=(
        "Create several Todo items in one call. Every item is attempted; items that "
        "cannot be written are reported in `failures` with their original index, so "
        "callers can retry just those."
    ),
    responses={
        201: {"description": "Batch processed; see failedCount for partial failures"},
        401: {"description": "Caller identity required"},
        413: {"description": "Too many items in one batch"},
        503: {"description": "Record store unreachable"},
    },
)
def create_todos(
    payload: BatchCreateRequest,
    identity: Optional[Identity] = Depends(get_identity),
    creator: BulkCreator = Depends(get_bulk_creator),
) -> BatchCreateResponse:
    """
    Batch-create Todos and return the partitioned result.
    """
    result = creator.create_batch(payload.requests, identity)
    return _to_response(result)
