"""
API routes for document value extraction planning
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..exceptions import ExtractionPlannerError, PersistenceError, ProfileLoadError, StaleStructureError
from ..models.plan import DocumentExtractionTask, ExtractionPlan, ExtractionSummary
from ..models.structure import ExtractionResultUpdate, ExtractionStructure
from ..services.extraction_service import DocumentValueExtractionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/extraction", tags=["extraction"])


def get_extraction_service(request: Request) -> DocumentValueExtractionService:
    return request.app.state.extraction_service


def to_http_exception(error: ExtractionPlannerError) -> HTTPException:
    """Map planner errors onto HTTP status codes"""
    if isinstance(error, ProfileLoadError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, StaleStructureError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, PersistenceError):
        return HTTPException(status_code=503, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


def structure_response(structure: ExtractionStructure) -> dict:
    return {"version": structure.version, "structure": structure.to_document()}


@router.get("/rules")
async def get_rule_table(service: DocumentValueExtractionService = Depends(get_extraction_service)):
    """Dump the value/document rule table"""
    return service.rule_table.to_dict()


@router.get("/{application_id}/plan", response_model=ExtractionPlan, response_model_by_alias=True)
async def get_extraction_plan(
    application_id: str,
    service: DocumentValueExtractionService = Depends(get_extraction_service)
):
    """
    Get the extraction plan for an application
    """
    try:
        return await service.create_extraction_plan(application_id)

    except HTTPException:
        raise
    except ExtractionPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error creating extraction plan for {application_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{application_id}/summary", response_model=ExtractionSummary, response_model_by_alias=True)
async def get_extraction_summary(
    application_id: str,
    service: DocumentValueExtractionService = Depends(get_extraction_service)
):
    """
    Get the person-name keyed extraction summary
    """
    try:
        return await service.generate_extraction_summary(application_id)

    except HTTPException:
        raise
    except ExtractionPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error creating extraction summary for {application_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{application_id}/structure")
async def create_extraction_structure(
    application_id: str,
    preserve_existing: bool = Query(False, description="Keep results of the stored structure"),
    service: DocumentValueExtractionService = Depends(get_extraction_service)
):
    """
    Generate the extraction structure and save it
    """
    try:
        structure = await service.create_and_save_extraction_structure(
            application_id, preserve_existing=preserve_existing
        )
        return structure_response(structure)

    except HTTPException:
        raise
    except ExtractionPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error creating extraction structure for {application_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{application_id}/structure")
async def get_extraction_structure(
    application_id: str,
    service: DocumentValueExtractionService = Depends(get_extraction_service)
):
    """
    Get the stored extraction structure
    """
    try:
        structure = await service.load_extraction_structure_from_database(application_id)
        if structure is None:
            raise HTTPException(status_code=404, detail=f"No extraction structure for {application_id}")
        return structure_response(structure)

    except HTTPException:
        raise
    except ExtractionPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error loading extraction structure for {application_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{application_id}/structure/results")
async def record_extraction_result(
    application_id: str,
    update: ExtractionResultUpdate,
    service: DocumentValueExtractionService = Depends(get_extraction_service)
):
    """
    Write one extractor result into the stored structure
    """
    try:
        structure, applied = await service.record_extraction_result(application_id, update)
        if structure is None:
            raise HTTPException(status_code=404, detail=f"No extraction structure for {application_id}")

        return {
            "applied": applied,
            "version": structure.version,
            "skippedUpdates": service.skipped_update_count,
        }

    except HTTPException:
        raise
    except ExtractionPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error recording extraction result for {application_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get(
    "/{application_id}/tasks",
    response_model=List[DocumentExtractionTask],
    response_model_by_alias=True
)
async def get_document_extraction_tasks(
    application_id: str,
    service: DocumentValueExtractionService = Depends(get_extraction_service)
):
    """
    Get one extractor work item per uploaded file
    """
    try:
        return await service.build_document_extraction_tasks(application_id)

    except HTTPException:
        raise
    except ExtractionPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error building extraction tasks for {application_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{application_id}/progress")
async def get_extraction_progress(
    application_id: str,
    service: DocumentValueExtractionService = Depends(get_extraction_service)
):
    """
    Get extraction progress of the stored structure
    """
    try:
        return await service.get_extraction_progress(application_id)

    except HTTPException:
        raise
    except ExtractionPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error computing extraction progress for {application_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
