"""Import plugin API routes.

Endpoints for listing import plugins, searching their external sources,
importing records as assets and toggling plugins on and off.
"""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from attic_import.api.dependencies import get_import_service
from attic_import.observability.logging import get_logger
from attic_import.plugins.errors import (
    ConflictError,
    DisabledPluginError,
    ImportPluginError,
    NotFoundError,
    UnauthorizedError,
    UnavailableError,
    ValidationError,
)
from attic_import.services.import_service import ImportService, PluginSummary

router = APIRouter(prefix="/plugins", tags=["Plugins"])
logger = get_logger(__name__)

_STATUS_BY_ERROR: list[tuple[type[ImportPluginError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (DisabledPluginError, status.HTTP_409_CONFLICT),
    (ConflictError, status.HTTP_409_CONFLICT),
    (UnauthorizedError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (UnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


# ============================================================================
# Request / Response Models
# ============================================================================

class SearchFieldResponse(BaseModel):
    key: str
    label: str


class PluginAttributeResponse(BaseModel):
    key: str
    name: str
    data_type: str
    required: bool = False


class PluginResponse(BaseModel):
    """An import plugin and its state."""
    id: str
    name: str
    description: str
    category_name: str
    category_description: str
    enabled: bool
    requires_auth: bool = False
    disabled_reason: str | None = None
    category_id: UUID | None = None
    search_fields: list[SearchFieldResponse] = Field(default_factory=list)
    attributes: list[PluginAttributeResponse] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, summary: PluginSummary) -> "PluginResponse":
        return cls(
            id=summary.id,
            name=summary.name,
            description=summary.description,
            category_name=summary.category_name,
            category_description=summary.category_description,
            enabled=summary.enabled,
            requires_auth=summary.requires_auth,
            disabled_reason=summary.disabled_reason,
            category_id=summary.category_id,
            search_fields=[SearchFieldResponse(key=f.key, label=f.label) for f in summary.search_fields],
            attributes=[
                PluginAttributeResponse(
                    key=a.key,
                    name=a.name,
                    data_type=a.data_type.value,
                    required=a.required,
                )
                for a in summary.attributes
            ],
        )


class PluginListResponse(BaseModel):
    plugins: list[PluginResponse]


class SearchResultResponse(BaseModel):
    external_id: str
    title: str
    subtitle: str | None = None
    image_url: str | None = None


class SearchResponse(BaseModel):
    results: list[SearchResultResponse]
    total: int


class ImportRequest(BaseModel):
    """Request body for importing one external record."""
    model_config = {"json_schema_extra": {"example": {"external_id": "zyTCAlFPjgYC"}}}

    external_id: str = Field(..., min_length=1, max_length=255)


class AssetResponse(BaseModel):
    id: UUID
    category_id: UUID
    name: str
    description: str | None = None
    image_url: str | None = None
    quantity: int
    attributes: dict[str, Any]
    import_plugin_id: str
    import_external_id: str


class EnableResponse(BaseModel):
    category_id: UUID
    created: bool


class DisableResponse(BaseModel):
    removed: bool
    asset_count: int


def _http_error(e: ImportPluginError) -> HTTPException:
    """Translate an import error into an HTTP error.

    Upstream failures are reported generically; their details stay in the logs.
    """
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(e, error_type):
            break
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    if status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
        logger.warning("plugin_upstream_unavailable", error=type(e).__name__, **e.context)
        return HTTPException(status_code=status_code, detail="External service unavailable")
    return HTTPException(status_code=status_code, detail=e.message)


# ============================================================================
# Endpoints
# ============================================================================

@router.get("", response_model=PluginListResponse, summary="List import plugins")
async def list_plugins(
    service: ImportService = Depends(get_import_service),
) -> PluginListResponse:
    plugins = await service.list_plugins()
    return PluginListResponse(plugins=[PluginResponse.from_summary(p) for p in plugins])


@router.get("/{plugin_id}", response_model=PluginResponse, summary="Get an import plugin")
async def get_plugin(
    plugin_id: str,
    service: ImportService = Depends(get_import_service),
) -> PluginResponse:
    try:
        summary = await service.get_plugin(plugin_id)
    except ImportPluginError as e:
        raise _http_error(e) from e
    return PluginResponse.from_summary(summary)


@router.get("/{plugin_id}/search", response_model=SearchResponse, summary="Search an external source")
async def search(
    plugin_id: str,
    q: str = Query("", description="Search query"),
    field: str = Query("", description="Search field; defaults to the plugin's first field"),
    limit: int = Query(0, description="Maximum results; 0 uses the default"),
    service: ImportService = Depends(get_import_service),
) -> SearchResponse:
    """Search the external source behind a plugin.

    Raises:
        HTTPException: 400 for a blank query or unknown field, 404 for an
            unknown plugin, 409 when disabled, 503 when the source fails
    """
    try:
        results = await service.search(plugin_id, field, q, limit)
    except ImportPluginError as e:
        raise _http_error(e) from e

    items = [
        SearchResultResponse(
            external_id=r.external_id,
            title=r.title,
            subtitle=r.subtitle,
            image_url=r.image_url,
        )
        for r in results
    ]
    return SearchResponse(results=items, total=len(items))


@router.post(
    "/{plugin_id}/import",
    response_model=AssetResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Import an external record as an asset",
)
async def import_item(
    plugin_id: str,
    body: ImportRequest,
    service: ImportService = Depends(get_import_service),
) -> AssetResponse:
    try:
        asset = await service.import_item(plugin_id, body.external_id)
    except ImportPluginError as e:
        raise _http_error(e) from e

    return AssetResponse(
        id=asset.id,
        category_id=asset.category_id,
        name=asset.name,
        description=asset.description,
        image_url=asset.image_url,
        quantity=asset.quantity,
        attributes=asset.attributes or {},
        import_plugin_id=asset.import_plugin_id,
        import_external_id=asset.import_external_id,
    )


@router.post("/{plugin_id}/enable", response_model=EnableResponse, summary="Enable an import plugin")
async def enable_plugin(
    plugin_id: str,
    service: ImportService = Depends(get_import_service),
) -> EnableResponse:
    try:
        result = await service.enable(plugin_id)
    except ImportPluginError as e:
        raise _http_error(e) from e
    return EnableResponse(category_id=result.category_id, created=result.created)


@router.post("/{plugin_id}/disable", response_model=DisableResponse, summary="Disable an import plugin")
async def disable_plugin(
    plugin_id: str,
    service: ImportService = Depends(get_import_service),
) -> DisableResponse:
    try:
        result = await service.disable(plugin_id)
    except ImportPluginError as e:
        raise _http_error(e) from e
    return DisableResponse(removed=result.removed, asset_count=result.asset_count)
