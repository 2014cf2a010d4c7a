"""FastAPI registration API - serves the public form, the admin panel and their JSON endpoints."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

import config
from camp.models.base import init_db
from web.api.admin_routes import router as admin_router
from web.api.routes import router as api_router
from web.auth import is_admin_authenticated

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("camp.web")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # A failed legacy import raises here and the server refuses to start
    await init_db()
    logger.info("Database ready at %s", config.DATABASE_URL)
    yield


app = FastAPI(title="Seminar Registration API", lifespan=lifespan)

app.include_router(api_router)
app.include_router(admin_router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}


@app.get("/admin", include_in_schema=False)
async def admin_page(request: Request):
    """Admin panel when signed in, login page otherwise."""
    page = "admin.html" if is_admin_authenticated(request) else "admin-login.html"
    path = config.PUBLIC_DIR / page
    if not path.is_file():
        raise HTTPException(404, "Not Found")
    return FileResponse(str(path), media_type="text/html")


# Static pages (registration form, admin assets). Mounted last so API routes win.
if config.PUBLIC_DIR.exists():
    app.mount("/", StaticFiles(directory=str(config.PUBLIC_DIR), html=True), name="public")
