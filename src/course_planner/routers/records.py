from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from ..auth import get_identity, get_identity_policy
from ..authz import Action, authorize, visible_to
from ..batch import new_record_id, utc_timestamp
from ..entities import AuthRule, ModelDef, RelationKind, describe_schema, get_model, input_model
from ..errors import ConditionalWriteFailed
from ..identity import Identity, IdentityPolicy
from ..models import RecordDict
from ..stores import ListQuery, RecordStore, get_store
from ..utils import pagination_envelope, to_wire

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/models",
    tags=["models"],
)


def _owner_filter(model: ModelDef, owner: Optional[str]) -> Dict[str, Any]:
    return {"owner": owner} if model.auth is AuthRule.OWNER else {}


def _sort_for(order: str) -> str:
    ord_norm = order.strip().lower()
    if ord_norm not in {"asc", "desc"}:
        raise HTTPException(status_code=400, detail="order must be 'asc' or 'desc'")
    return "-created_at" if ord_norm == "desc" else "created_at"


def _load_visible(
    model: ModelDef,
    record_id: str,
    identity: Optional[Identity],
    policy: IdentityPolicy,
    store: RecordStore,
) -> RecordDict:
    owner = authorize(model, Action.READ, identity, policy)
    record = store.get(model.name, record_id)
    # Another owner's record is reported exactly like a missing one.
    if record is None or not visible_to(record, owner, model):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{model.name} not found")
    return record


# PUBLIC_INTERFACE
@router.get(
    "",
    summary="Describe schema",
    description="List every model with its authorization rule, fields and relations.",
)
def list_models() -> List[Dict[str, Any]]:
    """
    Return a summary of the data schema.
    """
    return describe_schema()


# PUBLIC_INTERFACE
@router.post(
    "/{model_name}",
    status_code=status.HTTP_201_CREATED,
    summary="Create record",
    description=(
        "Create one record of the given model. Models that declare an `id` field take it "
        "from the payload; others get a generated id. Fails with 409 if the id exists."
    ),
    responses={
        201: {"description": "Record created"},
        401: {"description": "Caller identity required"},
        404: {"description": "Unknown model"},
        409: {"description": "Record already exists"},
    },
)
def create_record(
    model_name: str,
    payload: Dict[str, Any] = Body(...),
    identity: Optional[Identity] = Depends(get_identity),
    policy: IdentityPolicy = Depends(get_identity_policy),
    store: RecordStore = Depends(get_store),
) -> Dict[str, Any]:
    """
    Validate and store a new record.
    """
    model = get_model(model_name)
    owner = authorize(model, Action.CREATE, identity, policy)
    try:
        data = input_model(model).model_validate(payload)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False, include_context=False)) from exc

    record: RecordDict = data.model_dump()
    if not model.has_declared_id:
        record["id"] = new_record_id()
    if model.auth is AuthRule.OWNER:
        record["owner"] = owner
    now = utc_timestamp()
    record["created_at"] = now
    record["updated_at"] = now

    try:
        store.put_if_absent(model.name, record)
    except ConditionalWriteFailed as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    logger.info("Created %s record %s", model.name, record["id"])
    return to_wire(record)


# PUBLIC_INTERFACE
@router.get(
    "/{model_name}",
    summary="List records",
    description=(
        "List records of a model with limit/offset pagination, ordered by creation time. "
        "Owner-scoped models only return the caller's records."
    ),
    responses={
        200: {"description": "List retrieved successfully"},
        400: {"description": "Invalid query parameters"},
        404: {"description": "Unknown model"},
    },
)
def list_records(
    model_name: str,
    limit: int = Query(50, ge=0, le=1000, description="Maximum number of items to return"),
    offset: int = Query(0, ge=0, description="Number of items to skip"),
    order: str = Query("asc", description="Creation-time order: 'asc' or 'desc'"),
    identity: Optional[Identity] = Depends(get_identity),
    policy: IdentityPolicy = Depends(get_identity_policy),
    store: RecordStore = Depends(get_store),
) -> Dict[str, Any]:
    """
    List records visible to the caller.
    """
    model = get_model(model_name)
    owner = authorize(model, Action.LIST, identity, policy)
    query = ListQuery(limit=limit, offset=offset, filters=_owner_filter(model, owner), sort=_sort_for(order))
    items, total = store.list(model.name, query)
    return pagination_envelope(items=[to_wire(it) for it in items], total=total, limit=limit, offset=offset)


# PUBLIC_INTERFACE
@router.get(
    "/{model_name}/{record_id}",
    summary="Get record",
    responses={
        200: {"description": "Record found"},
        404: {"description": "Unknown model or record not found"},
    },
)
def get_record(
    model_name: str,
    record_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    policy: IdentityPolicy = Depends(get_identity_policy),
    store: RecordStore = Depends(get_store),
) -> Dict[str, Any]:
    """
    Retrieve a single record by its ID.
    """
    model = get_model(model_name)
    return to_wire(_load_visible(model, record_id, identity, policy, store))


# PUBLIC_INTERFACE
@router.get(
    "/{model_name}/{record_id}/{relation}",
    summary="Follow relation",
    description=(
        "Resolve a relation of a record. hasMany relations return a pagination envelope; "
        "belongsTo and hasOne return the related record or null."
    ),
    responses={
        200: {"description": "Relation resolved"},
        404: {"description": "Unknown model, record or relation"},
    },
)
def get_related(
    model_name: str,
    record_id: str,
    relation: str,
    limit: int = Query(50, ge=0, le=1000, description="Maximum number of items to return"),
    offset: int = Query(0, ge=0, description="Number of items to skip"),
    identity: Optional[Identity] = Depends(get_identity),
    policy: IdentityPolicy = Depends(get_identity_policy),
    store: RecordStore = Depends(get_store),
) -> Any:
    """
    Follow one relation from a record to its related record(s).
    """
    model = get_model(model_name)
    rel = model.relation(relation)
    if rel is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{model.name} has no relation '{relation}'")
    record = _load_visible(model, record_id, identity, policy, store)

    target = get_model(rel.target)
    target_owner = authorize(target, Action.READ, identity, policy)

    if rel.kind is RelationKind.BELONGS_TO:
        foreign_id = record.get(rel.key)
        if foreign_id is None:
            return None
        related = store.get(target.name, foreign_id)
        if related is None or not visible_to(related, target_owner, target):
            return None
        return to_wire(related)

    filters = {rel.key: record["id"], **_owner_filter(target, target_owner)}
    if rel.kind is RelationKind.HAS_ONE:
        items, _ = store.list(target.name, ListQuery(limit=1, filters=filters))
        return to_wire(items[0]) if items else None

    items, total = store.list(target.name, ListQuery(limit=limit, offset=offset, filters=filters))
    return pagination_envelope(items=[to_wire(it) for it in items], total=total, limit=limit, offset=offset)
