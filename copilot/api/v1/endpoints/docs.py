"""Document routing endpoint: find the storage folder and files for a topic."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from copilot.api.deps import get_document_router
from copilot.models.knowledge import Audience
from copilot.storage.paths import is_safe_folder
from copilot.storage.resolver import DocumentRouter, RouteResult
from copilot.storage.routing import Product, candidate_prefixes

router = APIRouter()


@router.get("/route", response_model=RouteResult)
async def route_documents(
    document_router: Annotated[DocumentRouter | None, Depends(get_document_router)],
    q: str | None = Query(default=None, max_length=500, description="Free-text topic"),
    product: str | None = Query(default=None, max_length=200, description="Catalogue product name"),
    series: str | None = Query(default=None, max_length=200),
    section: str | None = Query(default=None, max_length=50),
    folder: str | None = Query(default=None, max_length=500, description="Explicit folder"),
    audience: Audience = Audience.INTERNAL,
) -> RouteResult:
    """Route a topic, product or explicit folder to its files."""
    if document_router is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Object storage not configured",
        )

    include_internal = audience is not Audience.EXTERNAL

    if folder is not None:
        if not is_safe_folder(folder):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid folder")
        probe = await document_router.resolver.probe([folder], include_internal=include_internal)
        return RouteResult(topic=folder, folder=folder, probe=probe)

    if product:
        prefixes = candidate_prefixes(Product(name=product, series=series, section=section))
        if not prefixes:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid product name")
        probe = await document_router.resolver.probe(prefixes, include_internal=include_internal)
        return RouteResult(topic=product, product=product, folder=prefixes[0], probe=probe)

    if not q or not q.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="One of q, product or folder is required",
        )

    return await document_router.route(q, include_internal=include_internal)
