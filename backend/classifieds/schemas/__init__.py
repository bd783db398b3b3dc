from classifieds.schemas.auth import RegisterRequest, LoginRequest, IdentityResponse, MessageResponse
from classifieds.schemas.listing import (
    HouseCreate,
    HouseUpdate,
    HouseResponse,
    CarCreate,
    CarUpdate,
    CarResponse,
    ItemCreate,
    ItemUpdate,
    ItemResponse,
    JobCreate,
    JobUpdate,
    JobResponse,
    DashboardResponse,
)

__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "IdentityResponse",
    "MessageResponse",
    "HouseCreate",
    "HouseUpdate",
    "HouseResponse",
    "CarCreate",
    "CarUpdate",
    "CarResponse",
    "ItemCreate",
    "ItemUpdate",
    "ItemResponse",
    "JobCreate",
    "JobUpdate",
    "JobResponse",
    "DashboardResponse",
]
