from fastapi import APIRouter, Depends
from sqlmodel import Session
from app.db.session import get_session
from app.services.catalog import CatalogService
from app.services.linking import LinkingService

router = APIRouter()

def get_catalog_service(session: Session = Depends(get_session)) -> CatalogService:
    return CatalogService(session)

def get_linking_service(session: Session = Depends(get_session)) -> LinkingService:
    return LinkingService(session)

def business_view(business):
    return {
        "id": business.id,
        "name": business.name,
        "slug": business.slug,
        "description": business.description,
        "image": business.image,
    }

@router.get("/")
def read_businesses(service: CatalogService = Depends(get_catalog_service)):
    return [business_view(b) for b in service.list_businesses()]

@router.get("/{slug}")
def read_business(slug: str, service: CatalogService = Depends(get_catalog_service)):
    return business_view(service.get_business_by_slug(slug))

@router.get("/{slug}/requirements")
def read_business_requirements(
    slug: str,
    catalog: CatalogService = Depends(get_catalog_service),
    service: LinkingService = Depends(get_linking_service)
):
    """Active requirements of a business as shown to visitors"""
    business = catalog.get_business_by_slug(slug)
    return service.list_business_links(business.id, active_only=True)
