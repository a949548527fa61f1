import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from app.config import LOG_LEVEL
from app.database import init_db
from app.errors import AppError, describe_errors
from app.logging_setup import setup_logging
from app.routers import tasks, users

setup_logging(LOG_LEVEL)
logger = logging.getLogger(__name__)

init_db()

app = FastAPI(title="Task Manager API")

app.include_router(users.router)
app.include_router(tasks.router)


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


# Body/query validation is a client error like any other ValidationError
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    return JSONResponse(
        status_code=400,
        content={"error": describe_errors(errors), "details": jsonable_encoder(errors)},
    )


# Generic error handler to return JSON errors for unexpected exceptions
@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
