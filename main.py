from __future__ import annotations

import logging
from functools import lru_cache
from typing import Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, PlainTextResponse
from fastapi.templating import Jinja2Templates
from PIL import Image

from bridge import InvalidQuery, SolverBridge, SolverError, build_request
from config import TEMPLATE_DIR, Settings, configure_logging, load_settings

logger = logging.getLogger(__name__)

app = FastAPI(title="pathscope", version="1.0.0")
templates = Jinja2Templates(directory=str(TEMPLATE_DIR))


@lru_cache
def get_settings() -> Settings:
    return load_settings()


@lru_cache
def get_bridge() -> SolverBridge:
    settings = get_settings()
    return SolverBridge(
        command=settings.solver_command,
        cwd=settings.root_dir,
        max_concurrent=settings.max_concurrent_solvers,
        timeout=settings.solver_timeout,
    )


def map_dimensions(settings: Settings) -> Optional[Dict[str, int]]:
    """Return the base map size, or None when the image is missing or unreadable."""

    image_path = settings.root_dir / settings.map_image
    if not image_path.is_file():
        return None
    try:
        with Image.open(image_path) as image:
            return {"width": image.width, "height": image.height}
    except OSError:
        logger.warning("Could not read map image %s", image_path)
        return None


@app.get("/", response_class=HTMLResponse)
async def homepage(request: Request, settings: Settings = Depends(get_settings)) -> HTMLResponse:
    """Render the map page with the point form."""

    context = {
        "map_url": request.url_for("static_asset", filename=settings.map_image),
        "dimensions": map_dimensions(settings),
    }
    return templates.TemplateResponse(request, "index.html", context)


@app.get("/path", response_class=PlainTextResponse)
async def find_path(
    request: Request,
    settings: Settings = Depends(get_settings),
    bridge: SolverBridge = Depends(get_bridge),
) -> PlainTextResponse:
    """Run the solver and return its protocol output verbatim."""

    try:
        solver_request = build_request(request.query_params, strict_algorithm=settings.strict_algorithm)
    except InvalidQuery as exc:
        return PlainTextResponse(str(exc), status_code=400)

    try:
        output = await bridge.run(solver_request)
    except SolverError as exc:
        return PlainTextResponse(str(exc), status_code=exc.status_code)
    return PlainTextResponse(output)


@app.get("/static/{filename}")
async def static_asset(filename: str, settings: Settings = Depends(get_settings)) -> FileResponse:
    """Serve the base map image or the auxiliary CSV as-is."""

    if filename not in settings.static_assets:
        raise HTTPException(status_code=404, detail="Asset not found.")
    asset_path = settings.root_dir / filename
    if not asset_path.is_file():
        raise HTTPException(status_code=404, detail="Asset not found.")
    return FileResponse(asset_path)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):  # type: ignore[override]
    """Return JSON errors for API clients and fallback HTML for browsers."""

    accepts = request.headers.get("accept", "") or ""
    if "application/json" in accepts:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
    return templates.TemplateResponse(
        request,
        "error.html",
        {"status_code": exc.status_code, "message": exc.detail},
        status_code=exc.status_code,
    )


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Server running on port %d", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)
