import logging
from typing import Any, Dict, List, Literal, Optional, Union
from datetime import datetime
from fastapi import HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select
from app.models.business import Business
from app.models.requirement import BusinessRequirement, RequirementTemplate, Necessity
from app.services.catalog import CatalogService
from app.services.description import effective_description, resolve_description

logger = logging.getLogger(__name__)

LINK_SOURCE_ADMIN = "admin"

class LinkSucceeded(BaseModel):
    success: Literal[True] = True
    businessId: int
    businessName: str
    linkId: int

class LinkFailed(BaseModel):
    success: Literal[False] = False
    businessId: int
    businessName: Optional[str] = None
    reason: str
    duplicate: bool = False

LinkOutcome = Union[LinkSucceeded, LinkFailed]


class DuplicateLinkError(HTTPException):
    """409 whose body carries the existing link id next to the message."""

    def __init__(self, template: RequirementTemplate, business: Business, link_id: int):
        super().__init__(
            status_code=409,
            detail=f'"{template.name}" is already added to {business.name}.',
        )
        self.link_id = link_id

    def body(self) -> Dict[str, Any]:
        return {"detail": self.detail, "duplicate": True, "linkId": self.link_id}


class LinkingService:
    def __init__(self, session: Session):
        self.session = session
        self.catalog = CatalogService(session)

    def find_link(self, business_id: int, template_id: int) -> Optional[BusinessRequirement]:
        return self.session.exec(
            select(BusinessRequirement).where(
                BusinessRequirement.business_id == business_id,
                BusinessRequirement.template_id == template_id
            )
        ).first()

    def _link_projection(
        self,
        link: BusinessRequirement,
        template: RequirementTemplate,
        business: Business,
        product_count: int,
    ) -> Dict[str, Any]:
        template_description = resolve_description(template.description, business.name)
        return {
            "linkId": link.id,
            "templateId": template.id,
            "name": template.name,
            "description": effective_description(link.description_override, template.description, business.name),
            "descriptionOverride": link.description_override,
            "templateDescription": template_description,
            "image": template.image,
            "category": template.category,
            "necessity": template.necessity,
            "isDeprecated": template.is_deprecated,
            "isActive": link.is_active,
            "displayOrder": link.display_order,
            "source": link.source,
            "productCount": product_count,
            "linkedAt": link.created_at,
        }

    def _insert_link(self, business: Business, template: RequirementTemplate) -> BusinessRequirement:
        """Insert the link, turning a lost uniqueness race into the duplicate outcome."""
        link = BusinessRequirement(
            business_id=business.id,
            template_id=template.id,
            source=LINK_SOURCE_ADMIN,
        )
        self.session.add(link)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            existing = self.find_link(business.id, template.id)
            if existing is None:
                raise
            logger.info("Link race lost for business=%s template=%s", business.id, template.id)
            raise DuplicateLinkError(template, business, existing.id)
        self.session.refresh(link)
        return link

    def link_template(
        self,
        business_id: int,
        template_id: Optional[int] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
        image: Optional[str] = None,
        category: Optional[str] = None,
        necessity: Optional[Necessity] = None,
    ) -> Dict[str, Any]:
        """Link an existing template, or author a new one and link it, to a business."""
        business = self.catalog.get_business(business_id)

        was_created = template_id is None
        if was_created:
            template = self.catalog.build_template(
                name=name, category=category, necessity=necessity,
                description=description, image=image
            )
        else:
            template = self.catalog.get_template(template_id)

        if template.is_deprecated:
            raise HTTPException(
                status_code=400,
                detail="This requirement has been deprecated and cannot be added to new businesses."
            )

        existing = self.find_link(business.id, template.id)
        if existing:
            raise DuplicateLinkError(template, business, existing.id)

        link = self._insert_link(business, template)
        logger.info(
            "Linked template %s to business %s (link=%s, created_template=%s)",
            template.id, business.id, link.id, was_created
        )

        projection = self._link_projection(link, template, business, self.catalog.product_counts([template.id])[template.id])
        projection["wasCreated"] = was_created
        return projection

    def bulk_link(self, template_id: int, business_ids: List[int]) -> Dict[str, Any]:
        """Link one template to many businesses; each business succeeds or fails on its own."""
        if not business_ids:
            raise HTTPException(status_code=400, detail="businessIds must be a non-empty array")

        template = self.catalog.get_template(template_id)
        if template.is_deprecated:
            raise HTTPException(status_code=400, detail="Cannot link a deprecated requirement to new businesses.")

        results: List[LinkOutcome] = []
        for business_id in business_ids:
            results.append(self._link_one(template, business_id))

        linked = sum(1 for r in results if r.success)
        duplicates = sum(1 for r in results if not r.success and r.duplicate)
        summary = {
            "total": len(business_ids),
            "linked": linked,
            "duplicates": duplicates,
            "failed": len(results) - linked - duplicates,
        }
        logger.info("Bulk linked template %s: %s", template.id, summary)
        return {"results": [r.model_dump() for r in results], "summary": summary}

    def _link_one(self, template: RequirementTemplate, business_id: int) -> LinkOutcome:
        business = self.session.get(Business, business_id)
        if not business:
            return LinkFailed(businessId=business_id, reason="Business not found")

        if self.find_link(business.id, template.id):
            return LinkFailed(
                businessId=business_id,
                businessName=business.name,
                reason=f'"{template.name}" is already added to {business.name}',
                duplicate=True,
            )

        try:
            link = self._insert_link(business, template)
        except DuplicateLinkError:
            return LinkFailed(
                businessId=business_id,
                businessName=business.name,
                reason=f'"{template.name}" is already added to {business.name}',
                duplicate=True,
            )
        return LinkSucceeded(businessId=business_id, businessName=business.name, linkId=link.id)

    def list_business_links(self, business_id: int, active_only: bool = False) -> List[Dict[str, Any]]:
        business = self.catalog.get_business(business_id)

        query = (
            select(BusinessRequirement, RequirementTemplate)
            .join(RequirementTemplate, RequirementTemplate.id == BusinessRequirement.template_id)
            .where(BusinessRequirement.business_id == business.id)
        )
        if active_only:
            query = query.where(BusinessRequirement.is_active == True)
        rows = self.session.exec(
            query.order_by(BusinessRequirement.display_order, BusinessRequirement.created_at, BusinessRequirement.id)
        ).all()

        counts = self.catalog.product_counts(template.id for _, template in rows)
        return [self._link_projection(link, template, business, counts[template.id]) for link, template in rows]

    def list_template_links(self, template_id: int) -> List[Dict[str, Any]]:
        template = self.catalog.get_template(template_id)

        rows = self.session.exec(
            select(BusinessRequirement, Business)
            .join(Business, Business.id == BusinessRequirement.business_id)
            .where(BusinessRequirement.template_id == template.id)
            .order_by(BusinessRequirement.created_at, BusinessRequirement.id)
        ).all()

        return [
            {
                "linkId": link.id,
                "businessId": business.id,
                "businessName": business.name,
                "businessSlug": business.slug,
                "businessImage": business.image,
                "published": business.published,
                "descriptionOverride": link.description_override,
                "effectiveDescription": effective_description(
                    link.description_override, template.description, business.name
                ),
                "isActive": link.is_active,
                "source": link.source,
                "linkedAt": link.created_at,
            }
            for link, business in rows
        ]

    def update_link(self, business_id: int, link_id: Optional[int], changes: Dict[str, Any]) -> Dict[str, Any]:
        """Partial update of link fields. Only keys present in `changes` are written."""
        if not link_id:
            raise HTTPException(status_code=400, detail="linkId is required")

        link = self.session.exec(
            select(BusinessRequirement).where(
                BusinessRequirement.id == link_id,
                BusinessRequirement.business_id == business_id
            )
        ).first()
        if not link:
            raise HTTPException(status_code=404, detail="Link not found")

        if "descriptionOverride" in changes:
            link.description_override = changes["descriptionOverride"]
        if "isActive" in changes:
            if changes["isActive"] is None:
                raise HTTPException(status_code=400, detail="isActive cannot be null")
            link.is_active = changes["isActive"]
        if "displayOrder" in changes:
            if changes["displayOrder"] is None:
                raise HTTPException(status_code=400, detail="displayOrder cannot be null")
            link.display_order = changes["displayOrder"]

        link.updated_at = datetime.utcnow()
        self.session.add(link)
        self.session.commit()
        self.session.refresh(link)
        logger.info("Updated link %s on business %s fields=%s", link.id, business_id, sorted(changes))

        return {
            "linkId": link.id,
            "templateId": link.template_id,
            "descriptionOverride": link.description_override,
            "isActive": link.is_active,
            "displayOrder": link.display_order,
            "updatedAt": link.updated_at,
        }

    def _delete_link(self, link: BusinessRequirement, verb: str) -> Dict[str, str]:
        template = self.session.get(RequirementTemplate, link.template_id)
        business = self.session.get(Business, link.business_id)
        message = f'"{template.name}" {verb} "{business.name}"'
        link_id, business_id, template_id = link.id, business.id, template.id

        self.session.delete(link)
        self.session.commit()
        logger.info("Deleted link %s (business=%s template=%s)", link_id, business_id, template_id)
        return {"message": message}

    def unlink(self, business_id: int, link_id: Optional[int]) -> Dict[str, str]:
        if not link_id:
            raise HTTPException(status_code=400, detail="linkId is required")

        link = self.session.exec(
            select(BusinessRequirement).where(
                BusinessRequirement.id == link_id,
                BusinessRequirement.business_id == business_id
            )
        ).first()
        if not link:
            raise HTTPException(status_code=404, detail="Link not found")
        return self._delete_link(link, "removed from")

    def unlink_template(self, template_id: int, business_id: Optional[int]) -> Dict[str, str]:
        if not business_id:
            raise HTTPException(status_code=400, detail="businessId is required")

        link = self.find_link(business_id, template_id)
        if not link:
            raise HTTPException(status_code=404, detail="This requirement is not linked to that business")
        return self._delete_link(link, "unlinked from")
