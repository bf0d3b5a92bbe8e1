from typing import Optional
from fastapi import APIRouter, Depends
from sqlmodel import Session
from pydantic import BaseModel
from app.db.session import get_session
from app.models.user import User
from app.routers.auth import get_current_user
from app.services.comments import CommentService

router = APIRouter()

class CommentIn(BaseModel):
    content: Optional[str] = None

def get_comment_service(session: Session = Depends(get_session)) -> CommentService:
    return CommentService(session)

@router.patch("/{comment_id}")
def update_comment(
    comment_id: int,
    comment_in: CommentIn,
    current_user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service)
):
    """Edit your own comment"""
    return service.update_comment(current_user, comment_id, comment_in.content)

@router.delete("/{comment_id}")
def delete_comment(
    comment_id: int,
    current_user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service)
):
    return service.delete_comment(current_user, comment_id)
