from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from mindcare.core.database import get_db
from mindcare.core.deps import get_current_principal, get_optional_principal
from mindcare.models.article import Article
from mindcare.models.comment import Comment, Reply
from mindcare.schemas.article import ArticleListItem, ArticleDetail, ArticleCreate, ArticleUpdate
from mindcare.schemas.comment import CommentResponse, ReplyResponse
from mindcare.schemas.common import ResponseModel, PagedData
from mindcare.schemas.user import UserBrief
from mindcare.services import articles as article_service
from mindcare.services.notifications import NotificationDispatcher, get_dispatcher
from mindcare.services.permissions import Principal


router = APIRouter(prefix="/articles", tags=["articles"])


def build_reply(reply: Reply) -> ReplyResponse:
    return ReplyResponse(
        id=reply.id,
        userId=reply.user_id,
        user=UserBrief.from_user(reply.user),
        content=reply.content,
        createdAt=reply.created_at,
        updatedAt=reply.updated_at
    )


def build_comment_response(comment: Comment) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        userId=comment.user_id,
        user=UserBrief.from_user(comment.user),
        content=comment.content,
        createdAt=comment.created_at,
        updatedAt=comment.updated_at,
        replies=[build_reply(r) for r in comment.replies]
    )


def build_article_detail(article: Article) -> ArticleDetail:
    """Full article with comment and reply authors resolved"""
    return ArticleDetail(
        id=article.id,
        title=article.title,
        content=article.content,
        category=article.category,
        imageUrl=article.image_url or "",
        status=article.status,
        author=UserBrief.from_user(article.author),
        views=article.views,
        likes=article.like_user_ids,
        likeCount=len(article.likes),
        comments=[build_comment_response(c) for c in article.comments],
        commentCount=len(article.comments),
        version=article.version,
        createdAt=article.created_at,
        updatedAt=article.updated_at
    )


@router.get("", response_model=ResponseModel[PagedData[ArticleListItem]])
def get_articles(
    current: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    category: Optional[str] = None,
    keyword: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """List published articles"""
    articles, total = article_service.list_articles(db, current, size, category, keyword)

    records = [ArticleListItem(
        id=a.id,
        title=a.title,
        category=a.category,
        imageUrl=a.image_url or "",
        author=UserBrief.from_user(a.author),
        views=a.views,
        likeCount=len(a.likes),
        commentCount=len(a.comments),
        createdAt=a.created_at
    ) for a in articles]

    return ResponseModel(
        code=200,
        data=PagedData(
            records=records,
            total=total,
            current=current,
            size=size
        )
    )


@router.get("/{article_id}", response_model=ResponseModel[ArticleDetail])
def get_article(
    article_id: int,
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal)
):
    """Article detail, counts a view"""
    article = article_service.get_article(db, article_id, principal)
    return ResponseModel(code=200, data=build_article_detail(article))


@router.post("", response_model=ResponseModel[ArticleDetail], status_code=201)
def create_article(
    article_in: ArticleCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Create article (admin)"""
    article = article_service.create_article(db, article_in, principal)
    return ResponseModel(code=201, msg="Article created", data=build_article_detail(article))


@router.put("/{article_id}", response_model=ResponseModel[ArticleDetail])
def update_article(
    article_id: int,
    article_in: ArticleUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Update article (admin)"""
    article = article_service.update_article(db, article_id, article_in, principal)
    return ResponseModel(code=200, msg="Article updated", data=build_article_detail(article))


@router.delete("/{article_id}", response_model=ResponseModel)
def delete_article(
    article_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Delete article (admin)"""
    article_service.delete_article(db, article_id, principal)
    return ResponseModel(code=200, msg="Article deleted")


@router.post("/{article_id}/like", response_model=ResponseModel[ArticleDetail])
def toggle_like(
    article_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    """Like, or unlike when already liked"""
    article, liked = article_service.toggle_like(db, article_id, principal, dispatcher)
    return ResponseModel(
        code=200,
        msg="liked" if liked else "unliked",
        data=build_article_detail(article)
    )
