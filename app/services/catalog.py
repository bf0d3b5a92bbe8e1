import logging
from typing import Dict, Iterable, List, Optional
from datetime import datetime
from fastapi import HTTPException
from sqlalchemy import func
from sqlmodel import Session, select
from app.models.business import Business
from app.models.product import Product
from app.models.requirement import RequirementTemplate, Necessity

logger = logging.getLogger(__name__)

TEMPLATE_FIELDS = ("name", "description", "image", "category", "necessity")

class CatalogService:
    def __init__(self, session: Session):
        self.session = session

    # --- Businesses ---

    def get_business(self, business_id: int) -> Business:
        business = self.session.get(Business, business_id)
        if not business:
            raise HTTPException(status_code=404, detail="Business not found")
        return business

    def get_business_by_slug(self, slug: str) -> Business:
        business = self.session.exec(select(Business).where(Business.slug == slug)).first()
        if not business:
            raise HTTPException(status_code=404, detail="Business not found")
        return business

    def list_businesses(self, published_only: bool = True) -> List[Business]:
        query = select(Business)
        if published_only:
            query = query.where(Business.published == True)
        return self.session.exec(query.order_by(Business.name)).all()

    # --- Requirement templates ---

    def get_template(self, template_id: int) -> RequirementTemplate:
        template = self.session.get(RequirementTemplate, template_id)
        if not template:
            raise HTTPException(status_code=404, detail="Requirement not found")
        return template

    def list_templates(
        self,
        q: Optional[str] = None,
        category: Optional[str] = None,
        include_deprecated: bool = False,
    ) -> List[RequirementTemplate]:
        query = select(RequirementTemplate)
        if q:
            query = query.where(RequirementTemplate.name.ilike(f"%{q}%"))
        if category:
            query = query.where(RequirementTemplate.category == category)
        if not include_deprecated:
            query = query.where(RequirementTemplate.is_deprecated == False)
        return self.session.exec(query.order_by(RequirementTemplate.name)).all()

    def product_counts(self, template_ids: Iterable[int]) -> Dict[int, int]:
        """Number of catalog products attached to each template id."""
        ids = list(set(template_ids))
        if not ids:
            return {}
        rows = self.session.exec(
            select(Product.template_id, func.count(Product.id))
            .where(Product.template_id.in_(ids))
            .group_by(Product.template_id)
        ).all()
        counts = {template_id: 0 for template_id in ids}
        counts.update({template_id: count for template_id, count in rows})
        return counts

    def build_template(
        self,
        name: Optional[str],
        category: Optional[str],
        necessity: Optional[Necessity],
        description: Optional[str] = None,
        image: Optional[str] = None,
    ) -> RequirementTemplate:
        """Validate and stage a new template on the session without committing."""
        if not name or not category or not necessity:
            raise HTTPException(
                status_code=400,
                detail="name, category, and necessity are required to create a new requirement"
            )
        template = RequirementTemplate(
            name=name,
            description=description,
            image=image,
            category=category,
            necessity=necessity,
        )
        self.session.add(template)
        self.session.flush()
        return template

    def create_template(self, **fields) -> RequirementTemplate:
        template = self.build_template(**fields)
        self.session.commit()
        self.session.refresh(template)
        logger.info("Created requirement template %s (%s)", template.id, template.name)
        return template

    def update_template(self, template_id: int, changes: dict) -> RequirementTemplate:
        """Apply a partial update of canonical fields. Keys absent from `changes` are untouched."""
        template = self.get_template(template_id)
        for field in TEMPLATE_FIELDS:
            if field not in changes:
                continue
            value = changes[field]
            if field in ("name", "category", "necessity") and not value:
                raise HTTPException(status_code=400, detail=f"{field} cannot be empty")
            setattr(template, field, value)

        template.updated_at = datetime.utcnow()
        self.session.add(template)
        self.session.commit()
        self.session.refresh(template)
        logger.info("Updated requirement template %s fields=%s", template.id, sorted(changes))
        return template

    def deprecate_template(self, template_id: int) -> RequirementTemplate:
        template = self.get_template(template_id)
        if not template.is_deprecated:
            template.is_deprecated = True
            template.updated_at = datetime.utcnow()
            self.session.add(template)
            self.session.commit()
            self.session.refresh(template)
            logger.info("Deprecated requirement template %s", template.id)
        return template

    # --- Products ---

    def get_product(self, product_id: int) -> Product:
        product = self.session.get(Product, product_id)
        if not product:
            raise HTTPException(status_code=404, detail="Product not found")
        return product
