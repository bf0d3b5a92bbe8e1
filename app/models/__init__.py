# Import all models to register them with SQLModel
from app.models.user import User
from app.models.business import Business
from app.models.requirement import RequirementTemplate, BusinessRequirement, Necessity
from app.models.product import Product
from app.models.cart import Cart, CartItem
from app.models.shared_business import SharedBusiness
from app.models.comment import Comment

__all__ = [
    "User",
    "Business",
    "RequirementTemplate",
    "BusinessRequirement",
    "Necessity",
    "Product",
    "Cart",
    "CartItem",
    "SharedBusiness",
    "Comment",
]
