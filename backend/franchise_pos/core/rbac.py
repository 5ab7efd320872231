"""Role-Based Access Control (RBAC) utilities."""

from enum import Enum
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status

from franchise_pos.core.security import decode_access_token
from franchise_pos.db.session import DbSession


class UserRole(str, Enum):
    """User roles for RBAC."""

    PROVIDER = "PROVIDER"
    FRANCHISOR = "FRANCHISOR"
    FRANCHISEE = "FRANCHISEE"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


# Role hierarchy: provider > franchisor > franchisee > manager > employee
ROLE_HIERARCHY = {
    UserRole.PROVIDER: 5,
    UserRole.FRANCHISOR: 4,
    UserRole.FRANCHISEE: 3,
    UserRole.MANAGER: 2,
    UserRole.EMPLOYEE: 1,
}


class TokenData:
    """Authenticated caller, refreshed from the database on every request.

    Attributes:
        user_id: The user's database ID (``id`` is an alias).
        email: The user's email address.
        role: The user's role.
        franchisor_id: Set for franchisor owners.
        franchise_id: Set for franchisees and their staff.
        location_id: Home location of managers and employees.
        permissions: Employee permission flags by name.
    """

    def __init__(self, user_id: int, email: str, role: UserRole,
                 franchisor_id: Optional[int] = None,
                 franchise_id: Optional[int] = None,
                 location_id: Optional[int] = None,
                 full_name: str = "",
                 permissions: Optional[dict] = None):
        self.user_id = user_id
        self.id = user_id
        self.email = email
        self.role = role
        self.franchisor_id = franchisor_id
        self.franchise_id = franchise_id
        self.location_id = location_id
        self.full_name = full_name or email.split("@")[0]
        self.permissions = permissions or {}

    @property
    def level(self) -> int:
        return ROLE_HIERARCHY.get(self.role, 0)

    def has_role(self, minimum_role: UserRole) -> bool:
        return self.level >= ROLE_HIERARCHY[minimum_role]

    def can(self, permission: str) -> bool:
        """Employee permission flag, implied for franchisee and above."""
        return self.has_role(UserRole.FRANCHISEE) or bool(self.permissions.get(permission))


def extract_bearer_payload(request: Request) -> Optional[dict]:
    """Decode the Bearer header, falling back to the access_token cookie."""
    payload = None

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            payload = decode_access_token(token)

    if payload is None:
        cookie_token = request.cookies.get("access_token")
        if cookie_token:
            payload = decode_access_token(cookie_token)

    return payload


def token_data_from_user(user) -> TokenData:
    return TokenData(
        user_id=user.id,
        email=user.email,
        role=user.role,
        franchisor_id=user.franchisor_id,
        franchise_id=user.franchise_id,
        location_id=user.location_id,
        full_name=user.name or "",
        permissions=user.permission_flags(),
    )


def get_current_user(request: Request, db: DbSession) -> TokenData:
    """Get the current authenticated user from the JWT token."""
    from franchise_pos.models.user import User

    payload = extract_bearer_payload(request)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if user_id is None or payload.get("role") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    try:
        user = db.query(User).filter(User.id == int(user_id)).first()
    except ValueError:
        user = None
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is disabled",
        )

    return token_data_from_user(user)


def require_role(minimum_role: UserRole):
    """Dependency to require a minimum role level."""

    def role_checker(
        current_user: Annotated[TokenData, Depends(get_current_user)]
    ) -> TokenData:
        if not current_user.has_role(minimum_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role {minimum_role.value} or higher",
            )
        return current_user

    return role_checker


def get_optional_current_user(request: Request, db: DbSession) -> Optional[TokenData]:
    """Get the current user if a valid token is provided, otherwise None."""
    if extract_bearer_payload(request) is None:
        return None
    try:
        return get_current_user(request, db)
    except HTTPException:
        return None


# Common role dependencies
RequireProvider = Annotated[TokenData, Depends(require_role(UserRole.PROVIDER))]
RequireFranchisor = Annotated[TokenData, Depends(require_role(UserRole.FRANCHISOR))]
RequireFranchisee = Annotated[TokenData, Depends(require_role(UserRole.FRANCHISEE))]
RequireManager = Annotated[TokenData, Depends(require_role(UserRole.MANAGER))]
CurrentUser = Annotated[TokenData, Depends(get_current_user)]
OptionalCurrentUser = Annotated[Optional[TokenData], Depends(get_optional_current_user)]
