"""Page routes — load, save and delete page trees, and serve the live page."""

from __future__ import annotations

import hashlib
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, Response

from builder.kernel.migration import load_tree
from builder.kernel.renderer import render_page
from builder.kernel.storage import PageStorage, PersistenceError
from builder.kernel.types import DESKTOP, Node, RenderOptions
from builder.kernel.validation import validate_tree

from backend.config import settings
from backend.models.page import PageTreeRequest, PageTreeResponse, SavePageResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pages"])

_CACHE_CONTROL = "public, max-age=60, stale-while-revalidate=600"


def get_page_storage(request: Request) -> PageStorage:
    return request.app.state.page_storage


def valid_page_id(page_id: str) -> str:
    if page_id not in settings.VALID_PAGES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown page '{page_id}'. Valid pages: {', '.join(settings.VALID_PAGES)}",
        )
    return page_id


def _storage_failed(e: PersistenceError) -> HTTPException:
    logger.warning("Page storage failed: %s", e)
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Page storage unavailable.")


@router.get("/pages/{page_id}", status_code=200)
async def get_page(
    page_id: str = Depends(valid_page_id),
    storage: PageStorage = Depends(get_page_storage),
) -> PageTreeResponse:
    """Return the stored tree of a page, normalized to the current format."""
    try:
        payload = await storage.get(page_id)
    except PersistenceError as e:
        raise _storage_failed(e) from e
    if payload is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page not found.")
    return PageTreeResponse(tree=load_tree(payload).to_dict())


@router.post("/pages/{page_id}", status_code=200)
async def save_page(
    req: PageTreeRequest,
    page_id: str = Depends(valid_page_id),
    storage: PageStorage = Depends(get_page_storage),
) -> SavePageResponse:
    """
    Replace the tree of a page.

    The body must be a structurally valid tree: a root whose sections hold
    columns whose columns hold widgets, with unique ids. Responsive
    override quality is not enforced here; the renderer ignores stale
    overrides.
    """
    tree = req.tree.to_tree()
    errors = validate_tree(Node.from_dict(tree), check_overrides=False)
    if errors:
        raise HTTPException(status_code=422, detail=errors)

    try:
        await storage.put(page_id, tree)
    except PersistenceError as e:
        raise _storage_failed(e) from e
    logger.info("Saved page %s", page_id)
    return SavePageResponse(page_id=page_id)


@router.delete("/pages/{page_id}", status_code=204)
async def delete_page(
    page_id: str = Depends(valid_page_id),
    storage: PageStorage = Depends(get_page_storage),
) -> Response:
    """Forget a page. Deleting a page that was never saved succeeds."""
    try:
        await storage.delete(page_id)
    except PersistenceError as e:
        raise _storage_failed(e) from e
    logger.info("Deleted page %s", page_id)
    return Response(status_code=204)


@router.get("/p/{page_id}", response_class=HTMLResponse)
async def serve_live_page(
    page_id: str = Depends(valid_page_id),
    storage: PageStorage = Depends(get_page_storage),
) -> Response:
    """
    Serve the live (non-editing) HTML of a page.

    A page that was never saved renders as the empty page. Cache headers:
    - Cache-Control: short browser TTL with stale-while-revalidate
    - ETag: MD5 of the HTML for conditional requests
    """
    try:
        payload = await storage.get(page_id)
    except PersistenceError as e:
        raise _storage_failed(e) from e

    options = RenderOptions(
        device=DESKTOP,
        editing=False,
        tablet_max_width=settings.TABLET_MAX_WIDTH,
        mobile_max_width=settings.MOBILE_MAX_WIDTH,
        default_unit=settings.DEFAULT_UNIT,
        asset_base_url=settings.ASSET_BASE_URL,
        title=page_id.capitalize(),
    )
    html = render_page(load_tree(payload), options).encode("utf-8")
    etag = f'"{hashlib.md5(html, usedforsecurity=False).hexdigest()}"'

    return Response(
        content=html,
        media_type="text/html; charset=utf-8",
        headers={
            "Cache-Control": _CACHE_CONTROL,
            "ETag": etag,
            "X-Content-Type-Options": "nosniff",
        },
    )
