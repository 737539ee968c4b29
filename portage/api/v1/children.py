"""Children collection endpoints.

The collection is fetched and replaced as a whole; there is no per-child
write endpoint.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from portage.api.deps import get_children_store
from portage.core.logging import audit_logger
from portage.schemas.child import Child, dump_collection
from portage.services.storage import ChildrenStore, StorageError

logger = logging.getLogger(__name__)

router = APIRouter()


class SaveResponse(BaseModel):
    """Acknowledgement of a collection replace."""

    success: bool


@router.get(
    "",
    summary="Get all children",
    description="Returns the full children collection with embedded assessments",
)
async def list_children(
    store: Annotated[ChildrenStore, Depends(get_children_store)],
) -> list[dict[str, Any]]:
    """Return the stored collection in wire format."""
    try:
        children = await store.load()
    except StorageError as e:
        logger.error(f"Failed to load children: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load children",
        )
    return dump_collection(children)


@router.put(
    "",
    response_model=SaveResponse,
    summary="Replace all children",
    description="Replaces the whole children collection",
)
async def replace_children(
    children: list[Child],
    store: Annotated[ChildrenStore, Depends(get_children_store)],
) -> SaveResponse:
    """Replace the stored collection with the request body."""
    ids = [child.id for child in children]
    if len(ids) != len(set(ids)):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Child ids must be unique",
        )

    try:
        await store.replace(children)
    except StorageError as e:
        logger.error(f"Failed to save children: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save children",
        )

    audit_logger.log(
        action="children.replace",
        actor="api",
        entity_type="collection",
        entity_id="children",
        metadata={"count": len(children)},
    )
    return SaveResponse(success=True)


# Older clients replace the collection with POST
router.add_api_route(
    "",
    replace_children,
    methods=["POST"],
    response_model=SaveResponse,
    summary="Replace all children (POST)",
    include_in_schema=False,
)
