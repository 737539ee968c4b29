"""Assessment report endpoints.

Reports are derived on every request from the stored responses; nothing
computed here is persisted.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response

from portage.api.deps import get_catalog, get_children_store
from portage.catalog.loader import Catalog
from portage.schemas.child import Assessment, Child
from portage.services.report_note import PDFExporter, build_report_summary
from portage.services.storage import ChildrenStore, StorageError

router = APIRouter()


async def _find_assessment(
    store: ChildrenStore, child_id: str, assessment_id: str
) -> tuple[Child, Assessment]:
    try:
        child = await store.find_child(child_id)
    except StorageError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load children",
        )
    if child is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Child not found",
        )

    assessment = child.find_assessment(assessment_id)
    if assessment is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Assessment not found",
        )
    return child, assessment


@router.get(
    "/{child_id}/assessments/{assessment_id}/report",
    summary="Assessment report",
    description="Area scores, progress and contributors of one assessment",
)
async def get_report(
    child_id: str,
    assessment_id: str,
    store: Annotated[ChildrenStore, Depends(get_children_store)],
    catalog: Annotated[Catalog, Depends(get_catalog)],
) -> dict[str, Any]:
    """Return the derived report summary."""
    child, assessment = await _find_assessment(store, child_id, assessment_id)
    return build_report_summary(catalog, child, assessment)


@router.get(
    "/{child_id}/assessments/{assessment_id}/report.pdf",
    summary="Assessment report PDF",
    response_class=Response,
)
async def get_report_pdf(
    child_id: str,
    assessment_id: str,
    store: Annotated[ChildrenStore, Depends(get_children_store)],
    catalog: Annotated[Catalog, Depends(get_catalog)],
) -> Response:
    """Render the report as a PDF document."""
    child, assessment = await _find_assessment(store, child_id, assessment_id)
    summary = build_report_summary(catalog, child, assessment)
    pdf = PDFExporter().generate_pdf(summary)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="portage-{assessment_id}.pdf"'
        },
    )
