"""Entry point for the FastAPI-powered movie discovery backend."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import Depends, FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .config import Settings, get_settings
from .database import Database
from .errors import FlickpickError, InvalidInputError, InvalidTokenError
from .models import AuthResponse, LoginRequest, MessageResponse, RegisterRequest
from .security import PasswordHasher, TokenService
from .services.auth import AuthService
from .services.catalog import CatalogGateway
from .services.preferences import PreferenceManager
from .services.tmdb import TMDBClient
from .services.users import UserStore
from .utils import bearer_token, coerce_int

logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    settings: Settings = fastapi_app.state.settings
    exit_stack = AsyncExitStack()
    tmdb_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.tmdb_api_url),
            timeout=httpx.Timeout(settings.tmdb_timeout_seconds, connect=5.0),
        )
    )
    database = Database(settings.database_url)
    await database.create_all()

    attach_services(fastapi_app, settings, database.session_factory, tmdb_http_client)
    fastapi_app.state.database = database
    logger.info("%s ready (%s)", settings.app_name, settings.environment)

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()
        await exit_stack.aclose()


def attach_services(
    fastapi_app: FastAPI,
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    tmdb_http_client: httpx.AsyncClient,
) -> None:
    """Build the service graph and store it on ``app.state``."""

    store = UserStore(session_factory)
    preferences = PreferenceManager(store)
    tmdb = TMDBClient(settings, tmdb_http_client)

    fastapi_app.state.auth_service = AuthService(
        store, PasswordHasher.from_settings(settings), TokenService(settings)
    )
    fastapi_app.state.preferences = preferences
    fastapi_app.state.catalog = CatalogGateway(settings, tmdb, preferences)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Accounts, preferences and TMDB-backed movie discovery",
        version="1.0.0",
        lifespan=lifespan,
    )
    fastapi_app.state.settings = settings

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app, prefix=settings.api_prefix)
    return fastapi_app


def get_auth_service(fastapi_app: FastAPI) -> AuthService:
    service = getattr(fastapi_app.state, "auth_service", None)
    if not isinstance(service, AuthService):
        raise RuntimeError("Auth service not initialised")
    return service


def get_preferences(fastapi_app: FastAPI) -> PreferenceManager:
    service = getattr(fastapi_app.state, "preferences", None)
    if not isinstance(service, PreferenceManager):
        raise RuntimeError("Preference manager not initialised")
    return service


def get_catalog(fastapi_app: FastAPI) -> CatalogGateway:
    service = getattr(fastapi_app.state, "catalog", None)
    if not isinstance(service, CatalogGateway):
        raise RuntimeError("Catalog gateway not initialised")
    return service


async def _read_json_object(request: Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError as exc:
        # Malformed JSON or an oversized integer literal.
        raise InvalidInputError("Invalid payload") from exc
    if not isinstance(payload, dict):
        raise InvalidInputError("Invalid payload")
    return payload


async def _flickpick_error_handler(request: Request, exc: FlickpickError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, InvalidTokenError) else None
    return JSONResponse(
        {"message": exc.message}, status_code=exc.status_code, headers=headers
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"message": "Server error"}, status_code=500)


def register_routes(fastapi_app: FastAPI, *, prefix: str = "/api") -> None:
    fastapi_app.add_exception_handler(FlickpickError, _flickpick_error_handler)
    fastapi_app.add_exception_handler(Exception, _unhandled_error_handler)

    async def current_user_id(
        authorization: str | None = Header(default=None),
    ) -> str:
        token = bearer_token(authorization)
        if not token:
            raise InvalidTokenError("missing", "Not authenticated")
        try:
            return get_auth_service(fastapi_app).authenticate(token)
        except InvalidTokenError as exc:
            logger.info("Bearer token rejected (%s)", exc.reason)
            raise

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    # Authentication

    @fastapi_app.post(f"{prefix}/auth/register", status_code=201)
    async def register(request: Request) -> JSONResponse:
        payload = await _read_json_object(request)
        try:
            data = RegisterRequest.model_validate(payload)
        except ValidationError as exc:
            raise InvalidInputError("Please provide username, email, and password") from exc
        token, account = await get_auth_service(fastapi_app).register(
            data.username, data.email, data.password
        )
        body = AuthResponse(token=token, user=account.public_payload())
        return JSONResponse(body.model_dump(), status_code=201)

    @fastapi_app.post(f"{prefix}/auth/login")
    async def login(request: Request) -> dict[str, Any]:
        payload = await _read_json_object(request)
        try:
            data = LoginRequest.model_validate(payload)
        except ValidationError as exc:
            raise InvalidInputError("Please provide email and password") from exc
        token, account = await get_auth_service(fastapi_app).login(
            data.email, data.password
        )
        return AuthResponse(token=token, user=account.public_payload()).model_dump()

    @fastapi_app.get(f"{prefix}/auth/watchlist")
    async def legacy_watchlist_ids(
        user_id: str = Depends(current_user_id),
    ) -> list[int]:
        return await get_preferences(fastapi_app).get_watchlist(user_id)

    @fastapi_app.post(f"{prefix}/auth/watchlist")
    async def legacy_add_to_watchlist(
        request: Request, user_id: str = Depends(current_user_id)
    ) -> list[int]:
        payload = await _read_json_object(request)
        return await get_preferences(fastapi_app).add_to_watchlist(
            user_id, payload.get("movieId")
        )

    # Profile and watchlist

    @fastapi_app.get(f"{prefix}/users/profile")
    async def get_profile(user_id: str = Depends(current_user_id)) -> dict[str, Any]:
        account = await get_preferences(fastapi_app).get_profile(user_id)
        return account.profile_payload()

    @fastapi_app.put(f"{prefix}/users/profile")
    async def update_profile(
        request: Request, user_id: str = Depends(current_user_id)
    ) -> dict[str, Any]:
        payload = await _read_json_object(request)
        account = await get_preferences(fastapi_app).update_profile(
            user_id, payload.get("genres")
        )
        return account.profile_payload()

    @fastapi_app.get(f"{prefix}/users/watchlist")
    async def watchlist(user_id: str = Depends(current_user_id)) -> list[dict[str, Any]]:
        movies = await get_catalog(fastapi_app).watchlist_details(user_id)
        return [movie.model_dump(mode="json") for movie in movies]

    @fastapi_app.post(f"{prefix}/users/watchlist")
    async def add_to_watchlist(
        request: Request, user_id: str = Depends(current_user_id)
    ) -> dict[str, str]:
        payload = await _read_json_object(request)
        await get_preferences(fastapi_app).add_to_watchlist(
            user_id, payload.get("movieId")
        )
        return MessageResponse(message="Added to watchlist").model_dump()

    @fastapi_app.delete(f"{prefix}/users/watchlist/{{movie_id}}")
    async def remove_from_watchlist(
        movie_id: str, user_id: str = Depends(current_user_id)
    ) -> dict[str, str]:
        await get_preferences(fastapi_app).remove_from_watchlist(user_id, movie_id)
        return MessageResponse(message="Removed from watchlist").model_dump()

    # Catalog passthrough

    @fastapi_app.get(f"{prefix}/movies/trending")
    async def trending() -> list[dict[str, Any]]:
        movies = await get_catalog(fastapi_app).trending()
        return [movie.model_dump(mode="json") for movie in movies]

    @fastapi_app.get(f"{prefix}/movies/top-rated")
    async def top_rated() -> list[dict[str, Any]]:
        movies = await get_catalog(fastapi_app).top_rated()
        return [movie.model_dump(mode="json") for movie in movies]

    @fastapi_app.get(f"{prefix}/movies/search")
    async def search(query: str | None = None) -> list[dict[str, Any]]:
        movies = await get_catalog(fastapi_app).search(query or "")
        return [movie.model_dump(mode="json") for movie in movies]

    @fastapi_app.get(f"{prefix}/movies/details/{{movie_id}}")
    async def details(movie_id: str) -> dict[str, Any]:
        movie = await get_catalog(fastapi_app).details(coerce_int(movie_id, field="Movie id"))
        return movie.model_dump(mode="json")

    @fastapi_app.get(f"{prefix}/movies/recommended")
    async def recommended(user_id: str = Depends(current_user_id)) -> list[dict[str, Any]]:
        movies = await get_catalog(fastapi_app).recommended(user_id)
        return [movie.model_dump(mode="json") for movie in movies]


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "flickpick.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
