import logging
from typing import Any, Dict, List, Optional
from datetime import datetime
from fastapi import HTTPException
from sqlmodel import Session, select
from app.core.config import settings
from app.models.comment import Comment
from app.models.user import User
from app.services.catalog import CatalogService

logger = logging.getLogger(__name__)

class CommentService:
    def __init__(self, session: Session):
        self.session = session
        self.catalog = CatalogService(session)

    def _clean_content(self, content: Optional[str]) -> str:
        if not content or not content.strip():
            raise HTTPException(status_code=400, detail="Comment content is required")
        if len(content) > settings.COMMENT_MAX_LENGTH:
            raise HTTPException(
                status_code=400,
                detail=f"Comment must be less than {settings.COMMENT_MAX_LENGTH} characters"
            )
        return content.strip()

    def comment_view(self, comment: Comment, user: Optional[User] = None) -> Dict[str, Any]:
        if user is None:
            user = self.session.get(User, comment.user_id)
        return {
            "id": comment.id,
            "content": comment.content,
            "requirementId": comment.template_id,
            "createdAt": comment.created_at,
            "updatedAt": comment.updated_at,
            "user": {
                "id": user.id,
                "name": user.name,
                "email": user.email,
                "image": user.image,
            } if user else None,
        }

    def list_comments(self, template_id: int) -> List[Dict[str, Any]]:
        """Newest first."""
        template = self.catalog.get_template(template_id)
        rows = self.session.exec(
            select(Comment, User)
            .join(User, User.id == Comment.user_id)
            .where(Comment.template_id == template.id)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
        ).all()
        return [self.comment_view(comment, user) for comment, user in rows]

    def create_comment(self, user: User, template_id: int, content: Optional[str]) -> Dict[str, Any]:
        template = self.catalog.get_template(template_id)
        comment = Comment(user_id=user.id, template_id=template.id, content=self._clean_content(content))
        self.session.add(comment)
        self.session.commit()
        self.session.refresh(comment)
        logger.info("User %s commented on requirement %s (comment=%s)", user.id, template.id, comment.id)
        return self.comment_view(comment, user)

    def get_owned_comment(self, user: User, comment_id: int, action: str, allow_admin: bool = False) -> Comment:
        comment = self.session.get(Comment, comment_id)
        if not comment:
            raise HTTPException(status_code=404, detail="Comment not found")
        if comment.user_id != user.id and not (allow_admin and user.is_superuser):
            logger.warning("User %s denied %s on comment %s", user.id, action, comment_id)
            raise HTTPException(status_code=403, detail=f"Unauthorized to {action} this comment")
        return comment

    def update_comment(self, user: User, comment_id: int, content: Optional[str]) -> Dict[str, Any]:
        comment = self.get_owned_comment(user, comment_id, "edit")
        comment.content = self._clean_content(content)
        comment.updated_at = datetime.utcnow()
        self.session.add(comment)
        self.session.commit()
        self.session.refresh(comment)
        return self.comment_view(comment, user)

    def delete_comment(self, user: User, comment_id: int) -> Dict[str, str]:
        # Moderators may remove any comment
        comment = self.get_owned_comment(user, comment_id, "delete", allow_admin=True)
        self.session.delete(comment)
        self.session.commit()
        logger.info("User %s deleted comment %s", user.id, comment_id)
        return {"message": "Comment deleted successfully"}
