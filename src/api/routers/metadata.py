"""Page metadata endpoint."""
from fastapi import APIRouter, Depends

from api.dependencies import get_current_user_id, get_settings
from core.config import Settings
from schemas.metadata import MetadataRequest, MetadataResponse
from services import metadata_fetcher
from services.exceptions import InvalidArgumentError

router = APIRouter(prefix="/metadata", tags=["metadata"])


@router.post("/fetch", response_model=MetadataResponse)
async def fetch_metadata(
    data: MetadataRequest,
    _user_id: str = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
) -> MetadataResponse:
    """
    Fetch title, description, favicon and preview image for a URL.

    Always returns 200 for a non-blank URL; when the page cannot be fetched
    only `favicon` is set.
    """
    url = data.url.strip()
    if not url:
        raise InvalidArgumentError("URL is required")
    metadata = await metadata_fetcher.fetch_metadata(url, timeout=settings.metadata_fetch_timeout)
    return MetadataResponse.model_validate(metadata)
