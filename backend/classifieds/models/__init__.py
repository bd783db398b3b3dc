from classifieds.models.user import Role, User, ROLE_USER, ROLE_ADMIN
from classifieds.models.listing import House, Car, Item
from classifieds.models.job import Job, JobApplication, JobCustomQuestion, JobApplicationCustomAnswer
from classifieds.models.file import File, HouseImage, CarImage, ItemImage
from classifieds.models.company_verification import CompanyVerificationRequest
from classifieds.models.messaging import Conversation, Message
from classifieds.models.session import UserSession

__all__ = [
    "Role",
    "User",
    "ROLE_USER",
    "ROLE_ADMIN",
    "House",
    "Car",
    "Item",
    "Job",
    "JobApplication",
    "JobCustomQuestion",
    "JobApplicationCustomAnswer",
    "File",
    "HouseImage",
    "CarImage",
    "ItemImage",
    "CompanyVerificationRequest",
    "Conversation",
    "Message",
    "UserSession",
]
