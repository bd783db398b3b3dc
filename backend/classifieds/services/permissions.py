"""Authorization predicates.

Every predicate is a pure function returning a Decision. Nothing here touches
the database: callers read the entity fresh and pass it in, so a client can
never assert ownership through its own payload.
"""

from dataclasses import dataclass

from classifieds.errors import Forbidden
from classifieds.models import ROLE_ADMIN, ROLE_USER

NOT_OWNER = "not_owner"
NOT_ADMIN = "not_admin"
NOT_COMPANY = "not_company"
COMPANY_NOT_VERIFIED = "company_not_verified"
ANONYMOUS = "anonymous"
FILE_PRIVATE = "file_private"


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, as cached in the session snapshot."""
    id: int
    username: str
    email: str | None = None
    role: str = ROLE_USER
    is_company: bool = False
    is_verified_company: bool = False

    @classmethod
    def from_snapshot(cls, data: dict) -> "Identity":
        return cls(
            id=data["id"],
            username=data["username"],
            email=data.get("email"),
            role=data.get("role") or ROLE_USER,
            is_company=bool(data.get("isCompany")),
            is_verified_company=bool(data.get("isVerifiedCompany")),
        )

    def to_snapshot(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "isCompany": self.is_company,
            "isVerifiedCompany": self.is_verified_company,
        }


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def is_owner(entity, user_id: int | None) -> Decision:
    if user_id is not None and entity.user_id == user_id:
        return ALLOW
    return Decision(False, NOT_OWNER)


def is_admin(identity: Identity | None) -> Decision:
    if identity is None:
        return Decision(False, ANONYMOUS)
    if identity.role == ROLE_ADMIN:
        return ALLOW
    return Decision(False, NOT_ADMIN)


def is_verified_company(identity: Identity | None) -> Decision:
    if identity is None:
        return Decision(False, ANONYMOUS)
    if not identity.is_company:
        return Decision(False, NOT_COMPANY)
    if not identity.is_verified_company:
        return Decision(False, COMPANY_NOT_VERIFIED)
    return ALLOW


def can_mutate_listing(identity: Identity | None, listing) -> Decision:
    if identity is None:
        return Decision(False, ANONYMOUS)
    if is_owner(listing, identity.id) or is_admin(identity):
        return ALLOW
    return Decision(False, NOT_OWNER)


def can_post_listing(identity: Identity | None) -> Decision:
    """Job postings are reserved for verified companies."""
    return is_verified_company(identity)


def can_access_file(file, identity: Identity | None, entity_published: bool = False) -> Decision:
    """Decide whether ``identity`` may read ``file``.

    ``entity_published`` is the freshly read ``is_published`` flag of the
    listing the file is linked to (False when unlinked or the listing is gone).
    Files attached to a user profile are always readable.
    """
    if file.is_public:
        return ALLOW
    if identity is not None and file.user_id == identity.id:
        return ALLOW
    if file.entity_type == "user" and file.entity_id is not None:
        return ALLOW
    if file.entity_type is not None and entity_published:
        return ALLOW
    return Decision(False, FILE_PRIVATE if identity is not None else ANONYMOUS)


def require(decision: Decision, message: str) -> None:
    """Raise Forbidden carrying the decision's reason unless it allows."""
    if not decision:
        raise Forbidden(message, reason=decision.reason)
