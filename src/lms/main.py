import asyncio
import logging
import os
import traceback
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from lms.db import init_db
from lms.errors import LMSError
from lms.routes import auth
from lms.routes.resources import entity_routers
from lms.settings import settings
from lms.utils.db import db_pool
from lms.utils.logging import logger
import bugsnag
from bugsnag.asgi import BugsnagMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application")

    await init_db(app.state.db_pool)

    yield

    logger.info("Shutting down application")
    await app.state.db_pool.close()


if settings.bugsnag_api_key:
    bugsnag.configure(
        api_key=settings.bugsnag_api_key,
        project_root=os.path.dirname(os.path.abspath(__file__)),
        release_stage=settings.env,
        notify_release_stages=["development", "staging", "production"],
        auto_capture_sessions=True,
    )


app = FastAPI(lifespan=lifespan)
app.state.db_pool = db_pool


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logging.info(
        f"Incoming request: {request.method} {request.url.path} "
        f"from {request.client.host if request.client else 'unknown'}"
    )

    start_time = asyncio.get_event_loop().time()
    try:
        response = await call_next(request)
        process_time = asyncio.get_event_loop().time() - start_time

        logging.info(
            f"Request completed: {request.method} {request.url.path} "
            f"- Status: {response.status_code} - Duration: {process_time:.4f}s"
        )
        return response
    except Exception as e:
        process_time = asyncio.get_event_loop().time() - start_time
        logging.error(
            f"Error processing request: {request.method} {request.url.path} "
            f"- Error: {str(e)} - Duration: {process_time:.4f}s",
            exc_info=True,
        )
        raise


if settings.bugsnag_api_key:
    app.add_middleware(BugsnagMiddleware)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
for path, router in entity_routers():
    app.include_router(router, prefix=f"/api/{path}", tags=[path])


@app.exception_handler(LMSError)
async def lms_exception_handler(request: Request, exc: LMSError):
    content = exc.to_dict()

    if exc.status_code >= 500:
        logging.error(
            f"HTTP {exc.status_code} error on {request.method} {request.url.path}: "
            f"{exc.message} ({exc.error})"
        )
        if settings.is_production:
            content.pop("error", None)
        elif settings.env == "development":
            content["details"] = "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            )
    else:
        logging.info(
            f"HTTP {exc.status_code} on {request.method} {request.url.path}: {exc.message}"
        )

    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logging.error(
        f"Unhandled exception: {type(exc).__name__}: {str(exc)} "
        f"on {request.method} {request.url.path}",
        exc_info=True,
    )
    content = {"message": "Server error"}
    if not settings.is_production:
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logging.warning(
        f"Validation error on {request.method} {request.url.path}: {exc.errors()}"
    )
    return JSONResponse(
        status_code=400,
        content={
            "message": "Invalid request",
            "error": [
                {"loc": list(error["loc"]), "msg": error["msg"]}
                for error in exc.errors()
            ],
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logging.info(
        f"HTTP {exc.status_code} on {request.method} {request.url.path}: {exc.detail}"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
    )


@app.api_route("/health", methods=["GET", "HEAD"])
async def health_check():
    return {"status": "ok"}
