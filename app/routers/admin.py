from typing import Optional
from fastapi import APIRouter, Depends
from sqlmodel import Session
from pydantic import BaseModel
from app.db.session import get_session
from app.models.requirement import Necessity
from app.models.user import User
from app.routers.auth import get_admin_user
from app.services.linking import LinkingService

router = APIRouter()

# Pydantic models for requests
class LinkCreate(BaseModel):
    # Mode A: link an existing library entry
    templateId: Optional[int] = None
    # Mode B: author a new library entry and link it
    name: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    category: Optional[str] = None
    necessity: Optional[Necessity] = None

class LinkUpdate(BaseModel):
    linkId: Optional[int] = None
    descriptionOverride: Optional[str] = None
    isActive: Optional[bool] = None
    displayOrder: Optional[int] = None

class LinkDelete(BaseModel):
    linkId: Optional[int] = None

def get_linking_service(session: Session = Depends(get_session)) -> LinkingService:
    return LinkingService(session)

@router.get("/businesses/{business_id}/requirements")
def list_business_requirements(
    business_id: int,
    admin_user: User = Depends(get_admin_user),
    service: LinkingService = Depends(get_linking_service)
):
    """All requirements linked to a business, with resolved effective descriptions"""
    return service.list_business_links(business_id)

@router.post("/businesses/{business_id}/requirements", status_code=201)
def add_business_requirement(
    business_id: int,
    link_in: LinkCreate,
    admin_user: User = Depends(get_admin_user),
    service: LinkingService = Depends(get_linking_service)
):
    """Link an existing requirement, or create one and link it"""
    return service.link_template(
        business_id,
        template_id=link_in.templateId,
        name=link_in.name,
        description=link_in.description,
        image=link_in.image,
        category=link_in.category,
        necessity=link_in.necessity,
    )

@router.patch("/businesses/{business_id}/requirements")
def update_business_requirement(
    business_id: int,
    link_in: LinkUpdate,
    admin_user: User = Depends(get_admin_user),
    service: LinkingService = Depends(get_linking_service)
):
    """Update override text, activation or ordering of a link"""
    changes = link_in.model_dump(exclude_unset=True)
    changes.pop("linkId", None)
    return service.update_link(business_id, link_in.linkId, changes)

@router.delete("/businesses/{business_id}/requirements")
def remove_business_requirement(
    business_id: int,
    link_in: LinkDelete,
    admin_user: User = Depends(get_admin_user),
    service: LinkingService = Depends(get_linking_service)
):
    """Unlink a requirement. The library entry is kept."""
    return service.unlink(business_id, link_in.linkId)
