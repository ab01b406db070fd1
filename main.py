import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from accounts import AccountService
from config import Settings, configure_logging
from database import Database, connect
from errors import ApiError, RouteNotFound, ValidationFailure, error_envelope
from funkopops import FunkoPopService
from ratelimit import RateLimiter, rate_limit
from reviews import ReviewService
from security import IdentityProvider, get_current_user, require_role

logger = logging.getLogger(__name__)

API_PREFIX = "/api/1.0"

# Dependencies

def get_funkopop_service(request: Request) -> FunkoPopService:
    return request.app.state.funkopop_service


def get_review_service(request: Request) -> ReviewService:
    return request.app.state.review_service


def get_account_service(request: Request) -> AccountService:
    return request.app.state.account_service


# Funko pop routes
funkopop_router = APIRouter(prefix=f"{API_PREFIX}/funkopops")


@funkopop_router.get("")
async def list_funkopops(service: FunkoPopService = Depends(get_funkopop_service)):
    funkopops, size = await service.list_all()
    return {"funkopops": funkopops, "size": size}


@funkopop_router.get("/{funkopop_id}")
async def get_funkopop(funkopop_id: str, service: FunkoPopService = Depends(get_funkopop_service)):
    return {"funkopop": await service.get(funkopop_id)}


@funkopop_router.post("", status_code=201)
async def create_funkopop(
    payload: Optional[Dict[str, Any]] = Body(None),
    admin=Depends(require_role("admin")),
    service: FunkoPopService = Depends(get_funkopop_service),
):
    return {"funkopop": await service.create(payload)}


@funkopop_router.patch("/{funkopop_id}")
async def edit_funkopop(
    funkopop_id: str,
    payload: Optional[Dict[str, Any]] = Body(None),
    admin=Depends(require_role("admin")),
    service: FunkoPopService = Depends(get_funkopop_service),
):
    return {"funkopop": await service.edit(funkopop_id, payload)}


@funkopop_router.delete("/{funkopop_id}")
async def delete_funkopop(
    funkopop_id: str,
    admin=Depends(require_role("admin")),
    service: FunkoPopService = Depends(get_funkopop_service),
):
    deleted = await service.delete(funkopop_id)
    if not deleted:
        return Response(status_code=204)
    return {"deletedFunkoPop": deleted}


# Review routes
review_router = APIRouter(prefix=f"{API_PREFIX}/funkopops/{{funkopop_id}}/reviews")


@review_router.get("")
async def list_reviews(funkopop_id: str, service: ReviewService = Depends(get_review_service)):
    return {"reviews": await service.list_for(funkopop_id)}


@review_router.post("")
async def create_review(
    funkopop_id: str,
    payload: Optional[Dict[str, Any]] = Body(None),
    current_user=Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return {"review": await service.create(funkopop_id, current_user, payload)}


@review_router.patch("/{review_id}")
async def edit_review(
    funkopop_id: str,
    review_id: str,
    payload: Optional[Dict[str, Any]] = Body(None),
    current_user=Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return {"review": await service.edit(funkopop_id, review_id, current_user, payload)}


@review_router.delete("/{review_id}")
async def delete_review(
    funkopop_id: str,
    review_id: str,
    current_user=Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return {"deletedReview": await service.delete(funkopop_id, review_id, current_user)}


# Auth routes
auth_router = APIRouter(prefix=f"{API_PREFIX}/auth", dependencies=[Depends(rate_limit)])


@auth_router.post("/signup", status_code=201)
async def signup(
    payload: Optional[Dict[str, Any]] = Body(None),
    service: AccountService = Depends(get_account_service),
):
    return {"user": await service.signup(payload)}


@auth_router.post("/signin")
async def signin(
    payload: Optional[Dict[str, Any]] = Body(None),
    service: AccountService = Depends(get_account_service),
):
    user, token = await service.signin(payload)
    return {"user": user, "token": token}


@auth_router.get("/get-user")
async def get_user(current_user=Depends(get_current_user)):
    return {"user": current_user}


federated_router = APIRouter(prefix=f"{API_PREFIX}/auth", dependencies=[Depends(rate_limit)])


@federated_router.post("/federated")
async def federated_signin(
    payload: Optional[Dict[str, Any]] = Body(None),
    service: AccountService = Depends(get_account_service),
):
    user, token = await service.federated_signin(payload)
    return {"user": user, "token": token}


# Error handlers

def error_response(request: Request, error: ApiError) -> JSONResponse:
    if error.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, error.message)
    else:
        logger.debug("%s %s -> %s %s", request.method, request.url.path, error.status_code, error.message)
    return JSONResponse(status_code=error.status_code, content=error_envelope(request.url.path, error))


async def api_error_handler(request: Request, exc: ApiError):
    return error_response(request, exc)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code in (404, 405):
        return error_response(request, RouteNotFound())
    error = ApiError(str(exc.detail))
    error.status_code = exc.status_code
    return error_response(request, error)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    validation_errors = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body" and not isinstance(part, int)]
        validation_errors[".".join(loc) or "body"] = err.get("msg", "Invalid value")
    return error_response(request, ValidationFailure(validation_errors))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("%s %s raised %s", request.method, request.url.path, type(exc).__name__, exc_info=exc)
    return JSONResponse(status_code=500, content=error_envelope(request.url.path, ApiError()))


# App init

def create_app(
    settings: Optional[Settings] = None,
    db: Optional[Database] = None,
    identity_provider: Optional[IdentityProvider] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    db = db or connect(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db.ensure_indexes()
        yield

    app = FastAPI(title="Funko Pop API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.db = db
    app.state.rate_limiter = RateLimiter(settings.rate_limit_per_minute)
    app.state.funkopop_service = FunkoPopService(db.funkopops)
    app.state.review_service = ReviewService(db.funkopops, db.reviews)
    app.state.account_service = AccountService(db.users, settings, identity_provider)

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.get("/")
    def root():
        return {"message": "Welcome to FunkoPops"}

    app.include_router(funkopop_router)
    app.include_router(review_router)
    app.include_router(auth_router)
    if identity_provider is not None:
        app.include_router(federated_router)

    return app


if __name__ == "__main__":
    import uvicorn
    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
