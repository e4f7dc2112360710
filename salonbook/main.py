from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from salonbook.core.config import settings
from salonbook.core.errors import NotFoundError, ProtectedEntityError, StorageError, ValidationError
from salonbook.api import bookings, catalog, reports
from salonbook.core.logger import setup_logging, logger
from salonbook.services.salon import build_salon
from contextlib import asynccontextmanager
from datetime import datetime

setup_logging()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("🚀 Starting SalonBook backend")
    salon = build_salon()
    source = await salon.load()
    logger.info(f"📦 State loaded from {source}")
    salon.scheduler.start()
    app.state.salon = salon
    yield
    # Shutdown
    await salon.scheduler.stop()
    logger.info("🛑 Shutting down backend")

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan
)

def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": type(exc).__name__, "detail": str(exc)})

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return _error(422, exc)

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _error(404, exc)

@app.exception_handler(ProtectedEntityError)
async def protected_entity_handler(request: Request, exc: ProtectedEntityError):
    return _error(403, exc)

@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error(f"❌ Storage failure on {request.url.path}: {exc}")
    return _error(503, exc)

# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(f"🔥 UNHANDLED ERROR: {str(exc)}")
    return JSONResponse(
        status_code=500,
        content={"message": "Internal Server Error", "detail": "An unexpected error occurred."}
    )

# Include routers
app.include_router(catalog.router, tags=["Catalog"])
app.include_router(bookings.router, tags=["Bookings"])
app.include_router(reports.router, tags=["Reports"])

@app.get("/health")
async def health_check():
    salon = getattr(app.state, "salon", None)
    return {
        "status": "ok",
        "environment": settings.ENVIRONMENT,
        "source": salon.state.source if salon else None,
        "scheduler": salon.scheduler.running if salon else False,
        "timestamp": datetime.now().isoformat(),
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("salonbook.main:app", host="0.0.0.0", port=settings.PORT, reload=True)
