from typing import Optional
from fastapi import APIRouter, Depends
from sqlmodel import Session
from pydantic import BaseModel
from app.db.session import get_session
from app.models.user import User
from app.routers.auth import get_current_user
from app.services.cart import CartService

router = APIRouter()

class CartItemCreate(BaseModel):
    productId: Optional[int] = None
    quantity: int = 1
    # Only used when the catalog has no price for the product
    price: Optional[float] = None
    category: Optional[str] = None
    requirementName: Optional[str] = None

class CartItemUpdate(BaseModel):
    quantity: int

class ClearCategory(BaseModel):
    businessId: Optional[int] = None
    category: Optional[str] = None

class ClearRequirement(BaseModel):
    businessId: Optional[int] = None
    category: Optional[str] = None
    requirementName: Optional[str] = None

class ClearCart(BaseModel):
    businessId: Optional[int] = None

class CartName(BaseModel):
    businessId: Optional[int] = None
    name: Optional[str] = None

def get_cart_service(session: Session = Depends(get_session)) -> CartService:
    return CartService(session)

@router.post("/clear-category")
def clear_category(
    body: ClearCategory,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Remove every item saved under a category"""
    return {"items": service.clear_category(current_user.id, body.businessId, body.category)}

@router.post("/clear-requirement")
def clear_requirement(
    body: ClearRequirement,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Remove every item saved under a requirement within a category"""
    items = service.clear_requirement(current_user.id, body.businessId, body.category, body.requirementName)
    return {"items": items}

@router.post("/clear")
def clear_cart(
    body: ClearCart,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Clear entire cart"""
    return service.clear_cart(current_user.id, body.businessId)

@router.post("/save")
def save_cart(
    body: CartName,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Name a non-empty cart so it can be shared"""
    return service.save_cart(current_user.id, body.businessId, body.name)

@router.post("/finalize")
def finalize_cart(
    body: CartName,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    return service.finalize_cart(current_user.id, body.businessId, body.name)

@router.patch("/items/{cart_item_id}")
def update_cart_item(
    cart_item_id: int,
    cart_update: CartItemUpdate,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Update cart item quantity; zero or less removes the item"""
    return service.update_item_quantity(current_user.id, cart_item_id, cart_update.quantity)

@router.delete("/items/{cart_item_id}")
def remove_from_cart(
    cart_item_id: int,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Remove item from cart"""
    return service.remove_item(current_user.id, cart_item_id)

@router.get("/{business_id}")
def get_cart(
    business_id: int,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Get (or lazily create) the user's cart for a business"""
    cart = service.get_or_create_cart(current_user.id, business_id)
    return service.cart_view(cart)

@router.post("/{business_id}/items")
def add_to_cart(
    business_id: int,
    cart_item: CartItemCreate,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Add item to cart"""
    items = service.add_item(
        current_user.id,
        business_id,
        cart_item.productId,
        quantity=cart_item.quantity,
        price=cart_item.price,
        category=cart_item.category,
        requirement_name=cart_item.requirementName,
    )
    return {"items": items}
