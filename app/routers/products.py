from typing import List, Optional
from fastapi import APIRouter, Depends
from sqlmodel import Session, select
from app.db.session import get_session
from app.models.product import Product
from app.models.user import User
from app.routers.auth import get_admin_user
from app.services.catalog import CatalogService

router = APIRouter()

def get_catalog_service(session: Session = Depends(get_session)) -> CatalogService:
    return CatalogService(session)

@router.get("/", response_model=List[Product])
def read_products(
    q: Optional[str] = None,
    template_id: Optional[int] = None,
    session: Session = Depends(get_session)
):
    query = select(Product)
    if q:
        query = query.where(Product.name.ilike(f"%{q}%"))
    if template_id is not None:
        query = query.where(Product.template_id == template_id)
    return session.exec(query.order_by(Product.name)).all()

@router.get("/{product_id}", response_model=Product)
def read_product(product_id: int, service: CatalogService = Depends(get_catalog_service)):
    return service.get_product(product_id)

@router.post("/", response_model=Product, status_code=201)
def create_product(product: Product, admin_user: User = Depends(get_admin_user), session: Session = Depends(get_session)):
    if product.template_id is not None:
        CatalogService(session).get_template(product.template_id)

    session.add(product)
    session.commit()
    session.refresh(product)
    return product
