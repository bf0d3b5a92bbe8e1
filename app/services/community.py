import logging
from typing import Any, Dict, List, Optional
from datetime import datetime
from fastapi import HTTPException
from sqlalchemy import update
from sqlmodel import Session, select
from app.core.config import settings
from app.models.business import Business
from app.models.cart import Cart, CartItem
from app.models.product import Product
from app.models.shared_business import SharedBusiness
from app.models.user import User
from app.services.cart import CartService

logger = logging.getLogger(__name__)

FEED_ORDERING = {
    "trending": SharedBusiness.view_count.desc(),
    "popular": SharedBusiness.view_count.desc(),
    "recent": SharedBusiness.created_at.desc(),
    "mostCopied": SharedBusiness.copy_count.desc(),
}

class CommunityService:
    def __init__(self, session: Session):
        self.session = session
        self.carts = CartService(session)

    def _active_listing(self, shared_business_id: int) -> SharedBusiness:
        listing = self.session.exec(
            select(SharedBusiness).where(
                SharedBusiness.id == shared_business_id,
                SharedBusiness.is_active == True
            )
        ).first()
        if not listing:
            raise HTTPException(status_code=404, detail="Shared business not found")
        return listing

    def _increment(self, listing_id: int, column: str) -> None:
        """Bump a counter in SQL so concurrent requests never lose an increment."""
        counter = getattr(SharedBusiness, column)
        self.session.exec(
            update(SharedBusiness)
            .where(SharedBusiness.id == listing_id)
            .values({column: counter + 1})
        )

    def _author(self, user_id: int) -> Dict[str, Any]:
        user = self.session.get(User, user_id)
        return {
            "name": (user.name if user else None) or "Anonymous",
            "avatar": user.image if user else None,
            "verified": False,
        }

    def _publisher_rows(self, listing: SharedBusiness):
        return self.session.exec(
            select(CartItem, Product)
            .join(Cart, Cart.id == CartItem.cart_id)
            .join(Product, Product.id == CartItem.product_id)
            .where(Cart.user_id == listing.user_id, Cart.business_id == listing.business_id)
            .order_by(CartItem.category, CartItem.created_at, CartItem.id)
        ).all()

    # --- Publishing ---

    def toggle_share(self, user_id: int, business_id: int, is_shared: bool) -> Dict[str, Any]:
        cart = self.carts.find_cart(user_id, business_id)
        if not cart:
            raise HTTPException(status_code=404, detail="Business not found or access denied")

        listing = self.session.exec(
            select(SharedBusiness).where(
                SharedBusiness.user_id == user_id,
                SharedBusiness.business_id == business_id
            ).order_by(SharedBusiness.id)
        ).first()

        if is_shared:
            if not listing:
                business = self.carts.catalog.get_business(business_id)
                listing = SharedBusiness(
                    user_id=user_id,
                    business_id=business_id,
                    name=business.name,
                    description=f"{business.name} startup requirements",
                    is_active=True,
                )
            else:
                # Reuse the row so view/copy counters carry over
                listing.is_active = True
                listing.updated_at = datetime.utcnow()
            self.session.add(listing)
            self.session.commit()
            self.session.refresh(listing)
            logger.info("User %s published listing %s for business %s", user_id, listing.id, business_id)
        elif listing:
            listing.is_active = False
            listing.updated_at = datetime.utcnow()
            self.session.add(listing)
            self.session.commit()
            self.session.refresh(listing)
            logger.info("User %s unpublished listing %s for business %s", user_id, listing.id, business_id)

        return {
            "success": True,
            "isShared": is_shared,
            "sharedBusinessId": listing.id if listing else None,
        }

    # --- Reads ---

    def feed(self, sort: str = "trending", limit: Optional[int] = None) -> Dict[str, Any]:
        ordering = FEED_ORDERING.get(sort, FEED_ORDERING["trending"])
        rows = self.session.exec(
            select(SharedBusiness, Business)
            .join(Business, Business.id == SharedBusiness.business_id)
            .where(SharedBusiness.is_active == True)
            .order_by(ordering, SharedBusiness.id.desc())
            .limit(limit or settings.COMMUNITY_FEED_LIMIT)
        ).all()

        listings = []
        for listing, business in rows:
            items = [item for item, _ in self._publisher_rows(listing)]
            categories = []
            for item in items:
                if item.category and item.category not in categories:
                    categories.append(item.category)
            listings.append({
                "id": listing.id,
                "name": listing.name,
                "description": listing.description,
                "totalCost": sum(item.unit_price * item.quantity for item in items),
                "itemsCount": len(items),
                "sharedAt": listing.created_at,
                "viewCount": listing.view_count,
                "copyCount": listing.copy_count,
                "slug": business.slug,
                "author": self._author(listing.user_id),
                "categories": categories,
            })
        return {"businesses": listings, "count": len(listings)}

    def get_listing(self, shared_business_id: int, viewer: Optional[User] = None) -> Dict[str, Any]:
        """Listing detail. Reading it counts as a view."""
        listing = self._active_listing(shared_business_id)

        self._increment(listing.id, "view_count")
        self.session.commit()
        # Counters may have moved under other sessions too
        self.session.refresh(listing)

        business = self.session.get(Business, listing.business_id)
        rows = self._publisher_rows(listing)

        items_by_category: Dict[str, List[Dict[str, Any]]] = {}
        for item, product in rows:
            category = item.category or settings.DEFAULT_CATEGORY
            items_by_category.setdefault(category, []).append({
                "id": item.id,
                "productId": item.product_id,
                "name": product.name,
                "price": item.unit_price,
                "quantity": item.quantity,
                "image": product.image,
                "requirementName": item.requirement_name or settings.DEFAULT_REQUIREMENT_NAME,
                "productDetails": {
                    "id": product.id,
                    "name": product.name,
                    "description": product.description,
                    "image": product.image,
                    "url": product.url,
                },
            })

        return {
            "id": listing.id,
            "name": listing.name,
            "description": listing.description,
            "business": {
                "id": business.id,
                "name": business.name,
                "slug": business.slug,
                "description": business.description,
                "image": business.image,
            },
            "author": self._author(listing.user_id),
            "isOwner": viewer is not None and viewer.id == listing.user_id,
            "stats": {
                "viewCount": listing.view_count,
                "copyCount": listing.copy_count,
                "totalItems": sum(item.quantity for item, _ in rows),
                "totalCost": sum(item.unit_price * item.quantity for item, _ in rows),
            },
            "sharedAt": listing.created_at,
            "categories": sorted(items_by_category),
            "itemsByCategory": items_by_category,
        }

    # --- Copying ---

    def copy_listing(self, user_id: int, shared_business_id: int) -> Dict[str, Any]:
        """Replace the caller's cart for the listing's business with the publisher's items."""
        listing = self._active_listing(shared_business_id)
        listing_id, business_id = listing.id, listing.business_id
        business = self.session.get(Business, business_id)

        source_cart = self.carts.find_cart(listing.user_id, business_id)
        snapshot = self.carts.snapshot_items(source_cart)

        target_cart = self.carts.get_or_create_cart(user_id, business_id)
        copied = self.carts.replace_items(target_cart, snapshot)
        self._increment(listing_id, "copy_count")
        self.session.commit()

        logger.info(
            "User %s copied listing %s into cart %s (%s items)", user_id, listing_id, target_cart.id, copied
        )
        return {
            "success": True,
            "message": "Business copied successfully",
            "newBusinessSlug": business.slug,
            "itemsCopied": copied,
        }
