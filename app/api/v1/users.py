"""
Users API Endpoints

Registration, login, bearer token issue and the caller's own profile.
"""

import structlog
from fastapi import APIRouter, Depends, Request, Response, status

from app.core.access_policy import Action
from app.core.exceptions import AuthenticationError, NotFoundError
from app.core.security import (
    authenticate_user,
    create_access_token,
    create_password_hash,
    get_app_settings,
    get_store,
    require_action,
    require_authentication,
)
from app.models.schemas import (
    LoginRequest,
    SettingCreate,
    TokenResponse,
    UserCreate,
    UserProfile,
    UserRecord,
    UserSummary,
    UserUpdate,
)

logger = structlog.get_logger(__name__)
router = APIRouter()


# =============================================================================
# Registration and Login
# =============================================================================

@router.post("/register", response_model=UserSummary, status_code=status.HTTP_201_CREATED)
async def register_user(payload: UserCreate, store=Depends(get_store)):
    """
    Register a new user.

    The password is stored hashed, and the user starts with default settings.
    A settings row left behind under the same user id is reset to defaults.
    """
    fields = payload.model_dump()
    fields["password"] = create_password_hash(payload.password)

    user = await store.create_user(fields)

    defaults = SettingCreate(user_id=user.id)
    if await store.update_user_settings(user.id, defaults.model_dump(exclude={"user_id"})) is None:
        await store.create_user_settings(defaults)

    logger.info("User registered", user_id=user.id, user_type=user.user_type)
    return user


@router.post("/login", response_model=UserSummary)
async def login_user(payload: LoginRequest, store=Depends(get_store)):
    user = await authenticate_user(store, payload.username, payload.password)
    if user is None:
        logger.info("Login failed", username=payload.username)
        raise AuthenticationError("Invalid credentials")

    logger.info("User logged in", user_id=user.id)
    return user


@router.post("/token", response_model=TokenResponse)
async def issue_token(payload: LoginRequest, request: Request, store=Depends(get_store)):
    """Exchange credentials for a bearer access token."""
    user = await authenticate_user(store, payload.username, payload.password)
    if user is None:
        raise AuthenticationError("Invalid credentials")

    token = create_access_token(
        user.id,
        additional_claims={"role": user.user_type},
        config=get_app_settings(request),
    )
    return TokenResponse(access_token=token)


# =============================================================================
# Current User
# =============================================================================

@router.get("/me", response_model=UserProfile)
async def get_current_user_profile(current_user: UserRecord = Depends(require_authentication)):
    return current_user


@router.patch("/me", response_model=UserProfile)
async def update_current_user(
    payload: UserUpdate,
    current_user: UserRecord = Depends(require_authentication),
    store=Depends(get_store),
):
    """
    Update the caller's own profile.

    Only fields present in the body change. ``userType`` cannot be changed here.
    """
    changes = payload.changes()
    if changes.get("password") is not None:
        changes["password"] = create_password_hash(changes["password"])

    user = await store.update_user(current_user.id, changes)
    if user is None:
        raise NotFoundError("User", current_user.id, message="User not found")

    logger.info("User profile updated", user_id=user.id, fields=sorted(changes))
    return user


# =============================================================================
# Administration
# =============================================================================

@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    current_user: UserRecord = Depends(require_action(Action.DELETE_USER)),
    store=Depends(get_store),
):
    """Delete a user. Their requests, notifications and settings are kept."""
    if not await store.delete_user(user_id):
        raise NotFoundError("User", user_id, message="User not found")

    logger.info("User deleted", user_id=user_id, deleted_by=current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
