import logging
from typing import Any, Dict, Iterable, List, Optional
from datetime import datetime
from fastapi import HTTPException
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select, delete
from app.core.config import settings
from app.models.business import Business
from app.models.cart import Cart, CartItem
from app.models.product import Product
from app.models.shared_business import SharedBusiness
from app.services.catalog import CatalogService

logger = logging.getLogger(__name__)

class CartService:
    def __init__(self, session: Session):
        self.session = session
        self.catalog = CatalogService(session)

    # --- Cart lookup ---

    def find_cart(self, user_id: int, business_id: int) -> Optional[Cart]:
        return self.session.exec(
            select(Cart).where(Cart.user_id == user_id, Cart.business_id == business_id)
        ).first()

    def get_or_create_cart(self, user_id: int, business_id: int) -> Cart:
        """Return the user's cart for a business, creating an empty one on first use."""
        cart = self.find_cart(user_id, business_id)
        if cart:
            return cart

        business = self.catalog.get_business(business_id)
        cart = Cart(
            name=f"{business.name} Requirements",
            user_id=user_id,
            business_id=business.id,
            total_cost=0.0,
        )
        self.session.add(cart)
        try:
            self.session.commit()
        except IntegrityError:
            # Another request created it first; (user_id, business_id) is unique
            self.session.rollback()
            cart = self.find_cart(user_id, business_id)
            if cart is None:
                raise
            return cart

        self.session.refresh(cart)
        logger.info("Created cart %s for user %s business %s", cart.id, user_id, business_id)
        return cart

    # --- Projections ---

    def cart_items(self, cart: Cart) -> List[Dict[str, Any]]:
        """Items with product display fields merged in; labels come from the stored snapshot."""
        rows = self.session.exec(
            select(CartItem, Product)
            .join(Product, Product.id == CartItem.product_id)
            .where(CartItem.cart_id == cart.id)
            .order_by(CartItem.created_at, CartItem.id)
        ).all()
        return [self.item_view(item, product) for item, product in rows]

    def item_view(self, item: CartItem, product: Optional[Product] = None) -> Dict[str, Any]:
        if product is None:
            product = self.session.get(Product, item.product_id)
        return {
            "id": item.id,
            "productId": item.product_id,
            "name": product.name if product else "Unknown",
            "price": item.unit_price,
            "quantity": item.quantity,
            "image": product.image if product else None,
            "category": item.category or settings.DEFAULT_CATEGORY,
            "requirementName": item.requirement_name or settings.DEFAULT_REQUIREMENT_NAME,
        }

    def cart_view(self, cart: Cart) -> Dict[str, Any]:
        return {
            "id": cart.id,
            "name": cart.name,
            "businessId": cart.business_id,
            "totalCost": cart.total_cost,
            "items": self.cart_items(cart),
        }

    # --- Totals ---

    def recalculate_total(self, cart: Cart) -> float:
        """Recompute total_cost from every item currently in the cart.

        Runs inside the caller's transaction; the caller commits.
        """
        self.session.flush()
        items = self.session.exec(select(CartItem).where(CartItem.cart_id == cart.id)).all()
        cart.total_cost = sum(item.quantity * item.unit_price for item in items)
        cart.updated_at = datetime.utcnow()
        self.session.add(cart)
        return cart.total_cost

    def _commit_with_total(self, cart: Cart) -> None:
        self.recalculate_total(cart)
        self.session.commit()
        self.session.refresh(cart)

    # --- Mutations ---

    def _find_item(self, cart_id: int, product_id: int) -> Optional[CartItem]:
        return self.session.exec(
            select(CartItem).where(CartItem.cart_id == cart_id, CartItem.product_id == product_id)
        ).first()

    def add_item(
        self,
        user_id: int,
        business_id: int,
        product_id: Optional[int],
        quantity: int = 1,
        price: Optional[float] = None,
        category: Optional[str] = None,
        requirement_name: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Add a product or, when already present, increase its quantity."""
        if not product_id:
            raise HTTPException(status_code=400, detail="productId is required")
        if quantity < 1:
            raise HTTPException(status_code=400, detail="Quantity must be at least 1")

        product = self.catalog.get_product(product_id)
        cart = self.get_or_create_cart(user_id, business_id)

        existing_item = self._find_item(cart.id, product.id)
        if existing_item:
            # Snapshot price and labels stay as they were at first insert
            existing_item.quantity += quantity
            self.session.add(existing_item)
        else:
            unit_price = product.price if product.price is not None else (price or 0.0)
            self.session.add(CartItem(
                cart_id=cart.id,
                product_id=product.id,
                quantity=quantity,
                unit_price=unit_price,
                category=category or settings.DEFAULT_CATEGORY,
                requirement_name=requirement_name or settings.DEFAULT_REQUIREMENT_NAME,
            ))

        try:
            self._commit_with_total(cart)
        except IntegrityError:
            # Concurrent first add of the same product; fold into the winning row
            self.session.rollback()
            existing_item = self._find_item(cart.id, product.id)
            if existing_item is None:
                raise
            existing_item.quantity += quantity
            self.session.add(existing_item)
            self._commit_with_total(cart)

        logger.info(
            "Added product %s x%s to cart %s (total=%s)", product.id, quantity, cart.id, cart.total_cost
        )
        return self.cart_items(cart)

    def get_owned_item(self, user_id: int, cart_item_id: int):
        """Load an item and its cart, rejecting callers who do not own the cart."""
        item = self.session.get(CartItem, cart_item_id)
        if not item:
            raise HTTPException(status_code=404, detail="Cart item not found")

        cart = self.session.get(Cart, item.cart_id)
        if cart is None or cart.user_id != user_id:
            logger.warning("User %s denied access to cart item %s", user_id, cart_item_id)
            raise HTTPException(status_code=403, detail="Not authorized to modify this cart item")
        return item, cart

    def update_item_quantity(self, user_id: int, cart_item_id: int, quantity: int) -> Dict[str, Any]:
        item, cart = self.get_owned_item(user_id, cart_item_id)

        if quantity <= 0:
            # Non-positive quantity means remove
            self.session.delete(item)
            updated = None
        else:
            item.quantity = quantity
            self.session.add(item)
            updated = item

        self._commit_with_total(cart)
        logger.info(
            "Set cart item %s quantity=%s in cart %s (total=%s)", cart_item_id, quantity, cart.id, cart.total_cost
        )
        return {
            "item": self.item_view(updated) if updated is not None else None,
            "items": self.cart_items(cart),
            "totalCost": cart.total_cost,
        }

    def remove_item(self, user_id: int, cart_item_id: int) -> Dict[str, Any]:
        item, cart = self.get_owned_item(user_id, cart_item_id)

        self.session.delete(item)
        self._commit_with_total(cart)
        logger.info("Removed cart item %s from cart %s (total=%s)", cart_item_id, cart.id, cart.total_cost)
        return {"items": self.cart_items(cart), "totalCost": cart.total_cost}

    def _clear_matching(self, cart: Cart, *conditions) -> List[Dict[str, Any]]:
        self.session.exec(delete(CartItem).where(CartItem.cart_id == cart.id, *conditions))
        self._commit_with_total(cart)
        return self.cart_items(cart)

    def _category_condition(self, category: str):
        if category == settings.DEFAULT_CATEGORY:
            return or_(CartItem.category == category, CartItem.category.is_(None))
        return CartItem.category == category

    def _requirement_condition(self, requirement_name: str):
        if requirement_name == settings.DEFAULT_REQUIREMENT_NAME:
            return or_(CartItem.requirement_name == requirement_name, CartItem.requirement_name.is_(None))
        return CartItem.requirement_name == requirement_name

    def clear_category(self, user_id: int, business_id: Optional[int], category: Optional[str]) -> List[Dict[str, Any]]:
        if not business_id or not category:
            raise HTTPException(status_code=400, detail="Business ID and category are required")

        cart = self.find_cart(user_id, business_id)
        if not cart:
            return []

        items = self._clear_matching(cart, self._category_condition(category))
        logger.info("Cleared category %r from cart %s (total=%s)", category, cart.id, cart.total_cost)
        return items

    def clear_requirement(
        self,
        user_id: int,
        business_id: Optional[int],
        category: Optional[str],
        requirement_name: Optional[str],
    ) -> List[Dict[str, Any]]:
        if not business_id or not requirement_name or not category:
            raise HTTPException(
                status_code=400, detail="Business ID, requirement name, and category are required"
            )

        cart = self.find_cart(user_id, business_id)
        if not cart:
            return []

        items = self._clear_matching(
            cart, self._category_condition(category), self._requirement_condition(requirement_name)
        )
        logger.info(
            "Cleared requirement %r/%r from cart %s (total=%s)", category, requirement_name, cart.id, cart.total_cost
        )
        return items

    def clear_cart(self, user_id: int, business_id: Optional[int]) -> Dict[str, Any]:
        if not business_id:
            raise HTTPException(status_code=400, detail="Business ID is required")

        cart = self.find_cart(user_id, business_id)
        if cart:
            self._clear_matching(cart)
            logger.info("Cleared cart %s", cart.id)
        return {"success": True}

    # --- Naming ---

    def _item_count(self, cart: Cart) -> int:
        return self.session.exec(select(func.count(CartItem.id)).where(CartItem.cart_id == cart.id)).one()

    def _rename(self, cart: Cart, name: Optional[str]) -> Cart:
        if name:
            cart.name = name
        elif not cart.name:
            business = self.catalog.get_business(cart.business_id)
            cart.name = f"{business.name} Requirements"
        cart.updated_at = datetime.utcnow()
        self.session.add(cart)
        self.session.commit()
        self.session.refresh(cart)
        return cart

    def save_cart(self, user_id: int, business_id: Optional[int], name: Optional[str]) -> Dict[str, Any]:
        """Name a non-empty cart so it can be shared by id."""
        if not business_id:
            raise HTTPException(status_code=400, detail="Business ID is required")

        cart = self.find_cart(user_id, business_id)
        if not cart or self._item_count(cart) == 0:
            raise HTTPException(status_code=400, detail="Cart is empty")

        cart = self._rename(cart, name)
        logger.info("Saved cart %s as %r", cart.id, cart.name)
        return {"success": True, "cartId": cart.id}

    def finalize_cart(self, user_id: int, business_id: Optional[int], name: Optional[str]) -> Dict[str, Any]:
        if not business_id:
            raise HTTPException(status_code=400, detail="Missing businessId")

        cart = self.find_cart(user_id, business_id)
        if not cart:
            raise HTTPException(status_code=404, detail="Cart not found")
        if self._item_count(cart) == 0:
            raise HTTPException(status_code=400, detail="Cannot finalize an empty cart")

        cart = self._rename(cart, name)
        logger.info("Finalized cart %s as %r", cart.id, cart.name)
        return {"message": "Cart finalized successfully", "cart": self.cart_view(cart)}

    def shared_cart(self, cart_id: int) -> Dict[str, Any]:
        """Read-only view of any cart by id, for share links."""
        cart = self.session.get(Cart, cart_id)
        if not cart:
            raise HTTPException(status_code=404, detail="Cart not found")

        business = self.catalog.get_business(cart.business_id)
        view = self.cart_view(cart)
        view["name"] = cart.name or f"{business.name} Cart"
        view["businessName"] = business.name
        return view

    def snapshot_items(self, cart: Optional[Cart]) -> List[Dict[str, Any]]:
        """Plain copies of a cart's item rows, safe to keep across a delete."""
        if cart is None:
            return []
        items = self.session.exec(
            select(CartItem).where(CartItem.cart_id == cart.id).order_by(CartItem.created_at, CartItem.id)
        ).all()
        return [
            {
                "product_id": item.product_id,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "category": item.category,
                "requirement_name": item.requirement_name,
            }
            for item in items
        ]

    def replace_items(self, cart: Cart, snapshot: Iterable[Dict[str, Any]]) -> int:
        """Replace every item of `cart` with rows built from `snapshot`.

        Prices and labels are copied verbatim. Does not commit.
        """
        self.session.exec(delete(CartItem).where(CartItem.cart_id == cart.id))
        copied = 0
        for values in snapshot:
            self.session.add(CartItem(cart_id=cart.id, **values))
            copied += 1
        self.recalculate_total(cart)
        return copied

    # --- Profile ---

    def user_lists(self, user_id: int) -> List[Dict[str, Any]]:
        """Every cart the user owns, newest activity first."""
        rows = self.session.exec(
            select(Cart, Business)
            .join(Business, Business.id == Cart.business_id)
            .where(Cart.user_id == user_id)
            .order_by(Cart.updated_at.desc(), Cart.id.desc())
        ).all()

        shared_ids = set(self.session.exec(
            select(SharedBusiness.business_id).where(
                SharedBusiness.user_id == user_id,
                SharedBusiness.is_active == True
            )
        ).all())

        lists = []
        for cart, business in rows:
            item_count = self._item_count(cart)
            lists.append({
                "cartId": cart.id,
                "businessId": business.id,
                "businessName": business.name,
                "businessImage": business.image,
                "businessSlug": business.slug,
                "totalItems": item_count,
                "totalCost": cart.total_cost or 0.0,
                "isShared": business.id in shared_ids,
                "updatedAt": cart.updated_at,
            })
        return lists
