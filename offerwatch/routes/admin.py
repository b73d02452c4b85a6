"""Admin endpoints for import templates and import runs.

These endpoints are intended for operators onboarding new offer feeds.
In production, consider adding authentication (API key or admin token).
"""

import logging

from fastapi import APIRouter, HTTPException

from offerwatch.errors import FetchError, MappingError, SchemaError, StoreError
from offerwatch.schemas.admin import (
    RunSummaryOut,
    SourcePreviewRequest,
    SourcePreviewResponse,
    TemplateIn,
    TemplateOut,
)
from offerwatch.schemas.offers import OfferPayload
from offerwatch.services.feed_client import get_feed_client
from offerwatch.services.field_mapper import map_document, parse_mapping_schema
from offerwatch.services.import_runner import build_import_runner, run_imports_single_flight
from offerwatch.services.template_store import SqlTemplateStore
from offerwatch.settings import get_settings

router = APIRouter()
logger = logging.getLogger("uvicorn.error")


@router.get("/templates", response_model=list[TemplateOut])
async def list_templates() -> list[TemplateOut]:
    try:
        templates = await SqlTemplateStore().list_all()
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return [TemplateOut.model_validate(t) for t in templates]


@router.post("/templates", response_model=TemplateOut, status_code=201)
async def create_template(request: TemplateIn) -> TemplateOut:
    try:
        template = await SqlTemplateStore().create(
            name=request.name,
            source_url=request.source_url,
            mapping_schema=request.mapping_schema,
            is_active=request.is_active,
        )
    except SchemaError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    logger.info(f"Import template created: {template.name} ({template.source_url})")
    return TemplateOut.model_validate(template)


@router.get("/templates/{template_id}", response_model=TemplateOut)
async def get_template(template_id: int) -> TemplateOut:
    try:
        template = await SqlTemplateStore().get(template_id)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")
    return TemplateOut.model_validate(template)


@router.delete("/templates/{template_id}", status_code=204)
async def delete_template(template_id: int) -> None:
    try:
        deleted = await SqlTemplateStore().delete(template_id)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Template not found")
    logger.info(f"Import template {template_id} deleted")


@router.put("/templates/{template_id}", response_model=TemplateOut)
async def update_template(template_id: int, request: TemplateIn) -> TemplateOut:
    try:
        template = await SqlTemplateStore().update(
            template_id,
            name=request.name,
            source_url=request.source_url,
            mapping_schema=request.mapping_schema,
            is_active=request.is_active,
        )
    except SchemaError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")
    return TemplateOut.model_validate(template)


@router.post("/templates/test-url", response_model=SourcePreviewResponse)
async def preview_source(request: SourcePreviewRequest) -> SourcePreviewResponse:
    """Fetch a source URL and preview how it maps.

    Without a mapping schema, returns the first raw elements so an operator can
    pick JSON paths.
    """
    limit = get_settings().import_preview_limit
    try:
        document = await get_feed_client().fetch_json(request.source_url)
    except FetchError as e:
        raise HTTPException(status_code=400, detail=str(e))

    elements = document if isinstance(document, list) else [document]
    response = SourcePreviewResponse(
        is_array=isinstance(document, list),
        total_elements=len(elements),
        sample=elements[:limit],
    )
    if request.mapping_schema is None:
        return response

    try:
        schema = parse_mapping_schema(request.mapping_schema)
        for outcome in map_document(document, schema, default_source=get_settings().import_default_source):
            if len(response.offers) + len(response.errors) >= limit:
                break
            if outcome.offer is not None:
                response.offers.append(
                    OfferPayload.from_offer(outcome.offer).model_dump(mode="json", by_alias=True)
                )
            else:
                response.errors.append(f"element {outcome.index}: {outcome.error}")
    except MappingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return response


@router.post("/imports/run", response_model=RunSummaryOut)
async def trigger_import_run() -> RunSummaryOut:
    """Run every active template once (skipped if a run is already in progress)."""
    summary = await run_imports_single_flight(build_import_runner())
    if summary is None:
        raise HTTPException(status_code=409, detail="Import run already in progress")
    return RunSummaryOut(
        attempted=summary.attempted,
        succeeded=summary.succeeded,
        emitted=summary.emitted,
    )
