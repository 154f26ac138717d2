"""
Comment API routes

Comments and replies live under their article; every endpoint returns the
updated article.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mindcare.core.database import get_db
from mindcare.core.deps import get_current_principal
from mindcare.routers.articles import build_article_detail
from mindcare.schemas.article import ArticleDetail
from mindcare.schemas.comment import CommentCreate, CommentUpdate
from mindcare.schemas.common import ResponseModel
from mindcare.services import articles as article_service
from mindcare.services.notifications import NotificationDispatcher, get_dispatcher
from mindcare.services.permissions import Principal


router = APIRouter(prefix="/articles/{article_id}/comments", tags=["comments"])


@router.post("", response_model=ResponseModel[ArticleDetail], status_code=201)
def add_comment(
    article_id: int,
    comment_in: CommentCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    """Comment on an article"""
    article = article_service.add_comment(db, article_id, comment_in.content, principal, dispatcher)
    return ResponseModel(code=201, msg="Comment added", data=build_article_detail(article))


@router.put("/{comment_id}", response_model=ResponseModel[ArticleDetail])
def edit_comment(
    article_id: int,
    comment_id: int,
    comment_in: CommentUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Edit own comment"""
    article = article_service.edit_comment(db, article_id, comment_id, comment_in.content, principal)
    return ResponseModel(code=200, msg="Comment updated", data=build_article_detail(article))


@router.delete("/{comment_id}", response_model=ResponseModel[ArticleDetail])
def delete_comment(
    article_id: int,
    comment_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Delete a comment and its replies (author or admin)"""
    article = article_service.delete_comment(db, article_id, comment_id, principal)
    return ResponseModel(code=200, msg="Comment deleted", data=build_article_detail(article))


@router.post("/{comment_id}/replies", response_model=ResponseModel[ArticleDetail], status_code=201)
def add_reply(
    article_id: int,
    comment_id: int,
    reply_in: CommentCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    """Reply to a comment"""
    article = article_service.add_reply(db, article_id, comment_id, reply_in.content, principal, dispatcher)
    return ResponseModel(code=201, msg="Reply added", data=build_article_detail(article))


@router.put("/{comment_id}/replies/{reply_id}", response_model=ResponseModel[ArticleDetail])
def edit_reply(
    article_id: int,
    comment_id: int,
    reply_id: int,
    reply_in: CommentUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Edit own reply"""
    article = article_service.edit_reply(db, article_id, comment_id, reply_id, reply_in.content, principal)
    return ResponseModel(code=200, msg="Reply updated", data=build_article_detail(article))


@router.delete("/{comment_id}/replies/{reply_id}", response_model=ResponseModel[ArticleDetail])
def delete_reply(
    article_id: int,
    comment_id: int,
    reply_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Delete a reply (author or admin)"""
    article = article_service.delete_reply(db, article_id, comment_id, reply_id, principal)
    return ResponseModel(code=200, msg="Reply deleted", data=build_article_detail(article))
