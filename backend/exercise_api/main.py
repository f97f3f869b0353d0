"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the exercise favorites
backend. Controllers are intentionally thin: guards run as
dependencies, handlers delegate to services and return JSON responses.
Errors raised anywhere below are rendered by the `ApiError` handler.

Endpoints implemented:
- POST /auth/token
- POST /auth/register
- POST /users, GET /users
- GET/PATCH/DELETE /users/{username}, PATCH /users
- GET /exercises, GET /exercises/all, GET /exercises/{id}
- GET /exercises/target/{target}
- POST /exercises/data/refresh
- POST /exercises/favorite
- POST /exercises/user-favorite
"""

import json
import logging
import time
import uuid

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlmodel import Session

from . import services
from .auth import (
    Claims,
    TokenIssuer,
    ensure_admin,
    ensure_correct_user_or_admin,
    ensure_logged_in,
    get_token_issuer,
    require_user_id_or_elevated,
)
from .config import settings
from .database import create_db_and_tables, get_session
from .errors import ApiError
from .schemas import FavoriteIn, LoginIn, UserFavoritesIn, UserNewIn, UserRegisterIn, UserUpdateIn

app = FastAPI(title="Exercise Favorites API")
logger = logging.getLogger("exercise_api.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

app.state.token_issuer = TokenIssuer(
    settings.JWT_SECRET,
    algorithm=settings.JWT_ALGORITHM,
    expire_hours=settings.JWT_EXPIRE_HOURS,
)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
            },
            ensure_ascii=True,
        ),
    )
    return response


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error("request %s failed: %s", getattr(request.state, "request_id", ""), exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed payloads as 400 with one message per problem."""
    messages = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
    return JSONResponse(status_code=400, content={"error": {"message": messages, "status": 400}})


# --- auth ---

@app.post('/auth/token')
def login(payload: LoginIn, db: Session = Depends(get_session), issuer: TokenIssuer = Depends(get_token_issuer)):
    """Authenticate a user and return a signed session token."""
    user = services.UserService(db).authenticate(payload.username, payload.password)
    return {'token': issuer.issue(user)}


@app.post('/auth/register', status_code=201)
def register(payload: UserRegisterIn, db: Session = Depends(get_session), issuer: TokenIssuer = Depends(get_token_issuer)):
    """Register a new (non-admin) user and return a token for them."""
    user = services.UserService(db).register(payload)
    return {'token': issuer.issue(user)}


# --- users ---

@app.post('/users', status_code=201)
def create_user(
    payload: UserNewIn,
    db: Session = Depends(get_session),
    issuer: TokenIssuer = Depends(get_token_issuer),
    claims: Claims = Depends(ensure_admin),
):
    """Add a new user, possibly an admin. Admin only.

    Returns the new user and a token for them.
    """
    user = services.UserService(db).register(payload)
    return {'user': user, 'token': issuer.issue(user)}


@app.get('/users')
def list_users(db: Session = Depends(get_session), claims: Claims = Depends(ensure_admin)):
    """List all users ordered by username. Admin only."""
    return {'users': services.UserService(db).get_all()}


@app.get('/users/{username}')
def get_user(username: str, db: Session = Depends(get_session), claims: Claims = Depends(ensure_correct_user_or_admin)):
    return {'user': services.UserService(db).get(username)}


@app.patch('/users/{username}')
def update_user(
    username: str,
    payload: UserUpdateIn,
    db: Session = Depends(get_session),
    claims: Claims = Depends(ensure_correct_user_or_admin),
):
    """Partially update a user. Only the supplied fields change."""
    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    return {'user': services.UserService(db).update(username, data)}


@app.patch('/users')
def update_current_user(payload: UserUpdateIn, db: Session = Depends(get_session), claims: Claims = Depends(ensure_logged_in)):
    """Partially update the calling user."""
    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    return {'user': services.UserService(db).update(claims.username, data)}


@app.delete('/users/{username}')
def delete_user(username: str, db: Session = Depends(get_session), claims: Claims = Depends(ensure_correct_user_or_admin)):
    services.UserService(db).remove(username)
    return {'deleted': username}


# --- exercises ---

@app.get('/exercises')
def list_targets(db: Session = Depends(get_session)):
    """Return every distinct exercise target."""
    return {'targets': services.ExerciseService(db).get_targets()}


@app.get('/exercises/all')
def list_exercises(db: Session = Depends(get_session)):
    return {'exercises': services.ExerciseService(db).get_all()}


@app.get('/exercises/target/{target}')
def list_target_exercises(target: str, db: Session = Depends(get_session)):
    return {'target': services.ExerciseService(db).get_target_exercises(target)}


@app.get('/exercises/{exercise_id}')
def get_exercise(exercise_id: int, db: Session = Depends(get_session)):
    return {'exercise': services.ExerciseService(db).get(exercise_id)}


@app.post('/exercises/data/refresh', status_code=201)
def refresh_exercises(db: Session = Depends(get_session), claims: Claims = Depends(ensure_admin)):
    """Replace the exercise table from the external catalog. Admin only."""
    return {'exercises': services.ExerciseService(db).refresh_data()}


def _authorize_user_id(db: Session, claims: Claims, user_id: int) -> None:
    caller_id = None if claims.is_admin else services.UserService(db).get_id(claims.username)
    require_user_id_or_elevated(claims, caller_id, user_id)


@app.post('/exercises/favorite')
def toggle_favorite(payload: FavoriteIn, db: Session = Depends(get_session), claims: Claims = Depends(ensure_logged_in)):
    """Add the exercise to the user's favorites, or remove it if already there."""
    _authorize_user_id(db, claims, payload.userId)
    exercise = services.FavoriteService(db).toggle(payload.userId, payload.exerciseId)
    return {'message': 'Exercise favorites handled successfully', 'favExercise': exercise}


@app.post('/exercises/user-favorite')
def user_favorites(payload: UserFavoritesIn, db: Session = Depends(get_session), claims: Claims = Depends(ensure_logged_in)):
    """Return every exercise the user has favorited."""
    _authorize_user_id(db, claims, payload.userId)
    return {'userFavorites': services.FavoriteService(db).list_favorites(payload.userId)}


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
