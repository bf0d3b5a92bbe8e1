from fastapi import APIRouter, Depends
from sqlmodel import Session
from pydantic import BaseModel
from app.db.session import get_session
from app.models.user import User
from app.routers.auth import get_current_user
from app.services.cart import CartService
from app.services.community import CommunityService

router = APIRouter()

class ShareToggle(BaseModel):
    isShared: bool

def get_cart_service(session: Session = Depends(get_session)) -> CartService:
    return CartService(session)

def get_community_service(session: Session = Depends(get_session)) -> CommunityService:
    return CommunityService(session)

@router.get("/lists")
def read_my_lists(current_user: User = Depends(get_current_user), service: CartService = Depends(get_cart_service)):
    return {"lists": service.user_lists(current_user.id)}

@router.patch("/lists/{business_id}/share")
def toggle_share(
    business_id: int,
    body: ShareToggle,
    current_user: User = Depends(get_current_user),
    service: CommunityService = Depends(get_community_service)
):
    """Publish or unpublish the user's list for a business"""
    return service.toggle_share(current_user.id, business_id, body.isShared)
