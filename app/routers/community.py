from typing import Optional
from fastapi import APIRouter, Depends
from sqlmodel import Session
from app.db.session import get_session
from app.models.user import User
from app.routers.auth import get_current_user, get_current_user_optional
from app.services.community import CommunityService

router = APIRouter()

def get_community_service(session: Session = Depends(get_session)) -> CommunityService:
    return CommunityService(session)

@router.get("/")
def read_shared_businesses(sort: str = "trending", service: CommunityService = Depends(get_community_service)):
    """Published lists; sort is one of trending, recent, popular, mostCopied"""
    return service.feed(sort)

@router.get("/{shared_business_id}")
def read_shared_business(
    shared_business_id: int,
    current_user: Optional[User] = Depends(get_current_user_optional),
    service: CommunityService = Depends(get_community_service)
):
    """Listing detail. Counts as a view."""
    return service.get_listing(shared_business_id, viewer=current_user)

@router.post("/{shared_business_id}/copy")
def copy_shared_business(
    shared_business_id: int,
    current_user: User = Depends(get_current_user),
    service: CommunityService = Depends(get_community_service)
):
    """Replace the caller's list for this business with the published one"""
    return service.copy_listing(current_user.id, shared_business_id)
