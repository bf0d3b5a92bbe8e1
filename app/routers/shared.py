from fastapi import APIRouter, Depends
from sqlmodel import Session
from app.db.session import get_session
from app.services.cart import CartService

router = APIRouter()

def get_cart_service(session: Session = Depends(get_session)) -> CartService:
    return CartService(session)

@router.get("/{cart_id}")
def read_shared_cart(cart_id: int, service: CartService = Depends(get_cart_service)):
    """Read-only cart view for share links; no login required"""
    return service.shared_cart(cart_id)
