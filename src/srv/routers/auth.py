from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel.ext.asyncio.session import AsyncSession
from db.session import get_session
from services.users import DuplicateUserError, authenticate_user, create_user, get_user
from ..schemas import SessionUser, SignupResponse, Token, UserCreate, UserPublic
from ..security import create_session_token, get_current_session, settings

router = APIRouter(
    prefix="/api/auth",
    tags=["auth"],
)


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.jwt_access_token_expire_minutes * 60,
        httponly=True,
        samesite="lax",
    )


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED
)
async def signup(
    user_in: UserCreate,
    session: AsyncSession = Depends(get_session)
) -> SignupResponse:
    """
    Creates a new account. The password is never returned.

    Throws a 400 if the body is invalid (e.g. the password is shorter than 8 characters) or the requested role is "super-admin".

    Throws a 409 if there is already a user with the same email.

    Keyword arguments:

    user_in -- a `UserCreate` object with a first name, last name, email, password and (optionally) a role
    """
    try:
        user = await create_user(session, user_in)
    except DuplicateUserError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return SignupResponse(message="User created successfully. You can now log in.", email=user.email)


@router.post(
    "/token",
    response_model=Token
)
async def get_access_token(
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: AsyncSession = Depends(get_session)
) -> Token:
    """
    Takes in the `username` (the account's email) and `password` from the OAuth2 form data. Logs the user in, sets the session cookie and returns the session token (JWT).

    Throws a 401 if the user provides an incorrect email or password.

    Keyword arguments:

    form_data -- a form that takes the `username` and `password` as inputs
    """
    user = await authenticate_user(session, form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_session_token(user)
    set_session_cookie(response, access_token)
    return Token(access_token=access_token, token_type="bearer")


@router.get(
    "/me",
    response_model=UserPublic
)
async def read_users_me(
    current_user: SessionUser = Depends(get_current_session),
    session: AsyncSession = Depends(get_session)
) -> UserPublic:
    """
    Returns the stored details of the current authenticated user.

    Throws a 401 if there is no session, and a 404 if the session's user no longer exists.
    """
    user = await get_user(session, current_user.id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user
