import asyncio
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vidya import config
from vidya.auth.otp_service import OtpService, run_otp_sweeper
from vidya.learning.app import build_store, setup_learning_routes, startup_learning_system
from vidya.system.health_router import router as health_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger("vidya")

app = FastAPI(title="Vidya Learning API", version="1.0.0")

store = build_store()
background_tasks = set()


@app.on_event("startup")
async def startup_event():
    await startup_learning_system(store, seed=config.SEED_CATALOG)
    if config.OTP_SWEEP_INTERVAL_SECONDS > 0:
        task = asyncio.create_task(
            run_otp_sweeper(OtpService(store), config.OTP_SWEEP_INTERVAL_SECONDS)
        )
        background_tasks.add(task)
        logger.info("OTP sweeper running every %ds", config.OTP_SWEEP_INTERVAL_SECONDS)


@app.on_event("shutdown")
async def shutdown_event():
    for task in background_tasks:
        task.cancel()
    background_tasks.clear()


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==================== ERROR SHAPE ====================

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        field = ".".join(str(p) for p in errors[0].get("loc", ()) if p != "body")
        detail = " ".join(p for p in (field, errors[0].get("msg", "")) if p)
        message = f"Invalid request: {detail}"
    return JSONResponse(status_code=400, content={"error": message})

# ==================== ROUTER REGISTRATION ====================
setup_learning_routes(app, prefix=config.API_PREFIX)
app.include_router(health_router)
# ============================================================


@app.get("/")
def read_root():
    return {"message": "Vidya Learning API running"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
