from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, Response
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR

from api.config import create_db
from api.routes.note_routes import note_routes
from api.routes.player_routes import player_routes
from api.routes.progress_routes import progress_routes
from api.routes.quiz_routes import quiz_routes
from api.services.learner_session_service import get_session_service
from api.utils.common import status_for
from api.utils.logger import clear_request_context, configure_logging, set_request_context
from progression.errors import EngineError, PersistenceFailure

logger = configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db()
    yield
    # Player poll tasks belong to live sessions; stop them before the loop goes away.
    await get_session_service().close_all()
    logger.info("learner sessions closed on shutdown")


app = FastAPI(title="Course progression engine", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    rid = set_request_context(
        request.headers.get("x-request-id") or request.query_params.get("rid"),
        request.headers.get("x-learner-id"),
    )
    try:
        response: Response = await call_next(request)
        logger.info("%s %s -> %s", request.method, request.url.path, response.status_code)
        response.headers["x-request-id"] = rid
        return response
    finally:
        clear_request_context()


@app.exception_handler(EngineError)
async def engine_exception_handler(request: Request, exc: EngineError) -> JSONResponse:
    status_code = status_for(exc)
    log = logger.error if isinstance(exc, PersistenceFailure) else logger.warning
    log("engine error status=%s path=%s error=%s", status_code, request.url.path, exc.to_dict())
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "code": exc.code})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    logger.warning("http error status=%s path=%s detail=%s", exc.status_code, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_errors(exc)
    logger.warning("validation error path=%s errors=%s", request.url.path, errors)
    return JSONResponse(status_code=422, content={"detail": errors, "code": "validation_error"})


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx carries the raised ValueError, which is not JSON serializable.
    return [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error method=%s path=%s", request.method, request.url.path)
    return JSONResponse(status_code=HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Internal Server Error"})


@app.get("/")
def read_root():
    return {"message": "Progression engine is Healthy"}


for router in (progress_routes, quiz_routes, note_routes, player_routes):
    app.include_router(router, prefix="/learn")

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
