from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException, Request, status

from familybank.core.config import RequireEnv

ROLE_PARENT = "PARENT"
ROLE_CHILD = "CHILD"
ALLOWED_ROLES = {ROLE_PARENT, ROLE_CHILD}


def _decode_access_token(token: str) -> dict:
    secret = RequireEnv("JWT_SECRET_KEY")
    try:
        return jwt.decode(token, secret, algorithms=["HS256"])
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc


def _read_int_claim(payload: dict, name: str) -> int | None:
    value = payload.get(name)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc


@dataclass
class UserContext:
    Id: int
    Role: str
    AccountId: int | None = None


def RequireAuthenticated(request: Request) -> UserContext:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    token = auth_header.replace("Bearer ", "", 1).strip()
    payload = _decode_access_token(token)
    user_id = _read_int_claim(payload, "sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    role = str(payload.get("role") or "").upper()
    if role not in ALLOWED_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    account_id = _read_int_claim(payload, "account_id")
    if role == ROLE_CHILD and account_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return UserContext(Id=user_id, Role=role, AccountId=account_id)


def RequireParent():
    def _checker(user: UserContext = Depends(RequireAuthenticated)) -> UserContext:
        if user.Role != ROLE_PARENT:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        return user

    return _checker


def RequireChild():
    def _checker(user: UserContext = Depends(RequireAuthenticated)) -> UserContext:
        if user.Role != ROLE_CHILD:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        return user

    return _checker
