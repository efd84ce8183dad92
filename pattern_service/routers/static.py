from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse, PlainTextResponse, Response

from ..api.deps import get_app_settings
from ..core.config import Settings

router = APIRouter(tags=["Static"])


# PUBLIC_INTERFACE
@router.get("/", summary="Pattern generator page", include_in_schema=False)
def serve_index(settings: Settings = Depends(get_app_settings)) -> Response:
    """Serve the configured static file, or a plain-text 404 if it is missing."""
    path = settings.static_path()
    if path.is_file():
        return FileResponse(path)
    return PlainTextResponse(f"{settings.STATIC_FILE} not found", status_code=404)
