from classifieds.services.auth import (
    hash_password,
    verify_password,
    generate_session_token,
    get_or_create_role,
)
from classifieds.services.permissions import Identity, Decision

__all__ = [
    "hash_password",
    "verify_password",
    "generate_session_token",
    "get_or_create_role",
    "Identity",
    "Decision",
]
