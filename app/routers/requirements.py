from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends
from sqlmodel import Session
from pydantic import BaseModel
from app.db.session import get_session
from app.models.requirement import Necessity
from app.models.user import User
from app.routers.auth import get_admin_user, get_current_user
from app.routers.comments import CommentIn, get_comment_service
from app.services.catalog import CatalogService
from app.services.comments import CommentService
from app.services.linking import LinkingService

router = APIRouter()

class TemplateCreate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    category: Optional[str] = None
    necessity: Optional[Necessity] = None

class TemplateUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    category: Optional[str] = None
    necessity: Optional[Necessity] = None

class BulkLink(BaseModel):
    businessIds: List[int] = []

class TemplateUnlink(BaseModel):
    businessId: Optional[int] = None

def get_catalog_service(session: Session = Depends(get_session)) -> CatalogService:
    return CatalogService(session)

def get_linking_service(session: Session = Depends(get_session)) -> LinkingService:
    return LinkingService(session)

def template_view(template, product_count: int) -> Dict[str, Any]:
    return {
        "id": template.id,
        "name": template.name,
        "description": template.description,
        "image": template.image,
        "category": template.category,
        "necessity": template.necessity,
        "isDeprecated": template.is_deprecated,
        "productCount": product_count,
        "createdAt": template.created_at,
        "updatedAt": template.updated_at,
    }

@router.get("/")
def list_requirements(
    q: Optional[str] = None,
    category: Optional[str] = None,
    include_deprecated: bool = False,
    service: CatalogService = Depends(get_catalog_service)
):
    templates = service.list_templates(q=q, category=category, include_deprecated=include_deprecated)
    counts = service.product_counts(t.id for t in templates)
    return [template_view(t, counts[t.id]) for t in templates]

@router.post("/", status_code=201)
def create_requirement(
    template_in: TemplateCreate,
    admin_user: User = Depends(get_admin_user),
    service: CatalogService = Depends(get_catalog_service)
):
    template = service.create_template(**template_in.model_dump())
    return template_view(template, 0)

@router.get("/{template_id}")
def read_requirement(template_id: int, service: CatalogService = Depends(get_catalog_service)):
    template = service.get_template(template_id)
    return template_view(template, service.product_counts([template.id])[template.id])

@router.patch("/{template_id}")
def update_requirement(
    template_id: int,
    template_in: TemplateUpdate,
    admin_user: User = Depends(get_admin_user),
    service: CatalogService = Depends(get_catalog_service)
):
    """Edit the canonical entry; non-overridden links pick the change up on their next read"""
    template = service.update_template(template_id, template_in.model_dump(exclude_unset=True))
    return template_view(template, service.product_counts([template.id])[template.id])

@router.post("/{template_id}/deprecate")
def deprecate_requirement(
    template_id: int,
    admin_user: User = Depends(get_admin_user),
    service: CatalogService = Depends(get_catalog_service)
):
    template = service.deprecate_template(template_id)
    return template_view(template, service.product_counts([template.id])[template.id])

@router.get("/{template_id}/businesses")
def list_linked_businesses(
    template_id: int,
    admin_user: User = Depends(get_admin_user),
    service: LinkingService = Depends(get_linking_service)
):
    return service.list_template_links(template_id)

@router.post("/{template_id}/businesses")
def link_to_businesses(
    template_id: int,
    link_in: BulkLink,
    admin_user: User = Depends(get_admin_user),
    service: LinkingService = Depends(get_linking_service)
):
    """Link one requirement to several businesses; outcomes are reported per business"""
    return service.bulk_link(template_id, link_in.businessIds)

@router.delete("/{template_id}/businesses")
def unlink_from_business(
    template_id: int,
    link_in: TemplateUnlink,
    admin_user: User = Depends(get_admin_user),
    service: LinkingService = Depends(get_linking_service)
):
    return service.unlink_template(template_id, link_in.businessId)

@router.get("/{template_id}/comments")
def list_requirement_comments(template_id: int, service: CommentService = Depends(get_comment_service)):
    return service.list_comments(template_id)

@router.post("/{template_id}/comments", status_code=201)
def add_requirement_comment(
    template_id: int,
    comment_in: CommentIn,
    current_user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service)
):
    return service.create_comment(current_user, template_id, comment_in.content)
