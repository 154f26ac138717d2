"""
Article mutations: comments, replies and likes.

Each operation loads the article, checks the path and the principal, mutates
the nested rows, commits with a version check and then dispatches
notifications.
"""
import logging
from typing import Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from mindcare.core.database import utcnow
from mindcare.core.exceptions import NotFoundError
from mindcare.models.article import Article, ArticleLike
from mindcare.models.comment import Comment, Reply
from mindcare.schemas.article import ArticleCreate, ArticleUpdate
from mindcare.services import notifications
from mindcare.services.common import clean_content, commit, paginate
from mindcare.services.notifications import NotificationDispatcher
from mindcare.services.permissions import (
    Principal, can_delete, can_edit, can_manage_articles, require
)

logger = logging.getLogger(__name__)


def _is_visible(article: Article, principal: Optional[Principal]) -> bool:
    return article.status == "published" or (principal is not None and principal.is_admin)


def load_article(db: Session, article_id: int, principal: Optional[Principal] = None) -> Article:
    article = db.query(Article).options(
        selectinload(Article.author),
        selectinload(Article.likes),
        selectinload(Article.comments).selectinload(Comment.user),
        selectinload(Article.comments).selectinload(Comment.replies).selectinload(Reply.user),
    ).filter(Article.id == article_id).first()

    if not article or not _is_visible(article, principal):
        raise NotFoundError("Article not found")
    return article


def _find_comment(article: Article, comment_id: int) -> Comment:
    for comment in article.comments:
        if comment.id == comment_id:
            return comment
    raise NotFoundError("Comment not found")


def _find_reply(comment: Comment, reply_id: int) -> Reply:
    for reply in comment.replies:
        if reply.id == reply_id:
            return reply
    raise NotFoundError("Reply not found")


# ============ Articles ============

def list_articles(
    db: Session,
    current: int,
    size: int,
    category: Optional[str] = None,
    keyword: Optional[str] = None,
):
    query = db.query(Article).options(
        selectinload(Article.author),
        selectinload(Article.likes),
        selectinload(Article.comments),
    ).filter(Article.status == "published")

    if category:
        query = query.filter(Article.category == category)
    if keyword:
        query = query.filter(
            or_(
                Article.title.contains(keyword),
                Article.content.contains(keyword)
            )
        )

    query = query.order_by(Article.created_at.desc(), Article.id.desc())
    return paginate(query, current, size)


def get_article(db: Session, article_id: int, principal: Optional[Principal] = None) -> Article:
    """Fetch one article and count the view"""
    load_article(db, article_id, principal)

    # Targeted increment, outside the version check
    db.query(Article).filter(Article.id == article_id).update(
        {Article.views: Article.views + 1}, synchronize_session=False
    )
    db.commit()
    return load_article(db, article_id, principal)


def create_article(db: Session, article_in: ArticleCreate, principal: Principal) -> Article:
    require(can_manage_articles(principal), "Only admins can publish articles")

    article = Article(
        title=clean_content(article_in.title, "title"),
        content=clean_content(article_in.content),
        category=article_in.category,
        image_url=article_in.imageUrl or "",
        status=article_in.status,
        author_id=principal.user_id,
    )
    db.add(article)
    commit(db)
    logger.info(f"Article {article.id} created by user {principal.user_id}")
    return load_article(db, article.id, principal)


def update_article(db: Session, article_id: int, article_in: ArticleUpdate, principal: Principal) -> Article:
    require(can_manage_articles(principal), "Only admins can edit articles")
    article = load_article(db, article_id, principal)

    if article_in.title is not None:
        article.title = clean_content(article_in.title, "title")
    if article_in.content is not None:
        article.content = clean_content(article_in.content)
    if article_in.category is not None:
        article.category = article_in.category
    if article_in.imageUrl is not None:
        article.image_url = article_in.imageUrl
    if article_in.status is not None:
        article.status = article_in.status

    commit(db, article)
    return load_article(db, article_id, principal)


def delete_article(db: Session, article_id: int, principal: Principal) -> None:
    require(can_manage_articles(principal), "Only admins can delete articles")
    article = load_article(db, article_id, principal)

    db.delete(article)
    commit(db)
    logger.info(f"Article {article_id} deleted by user {principal.user_id}")


# ============ Comments ============

def add_comment(
    db: Session,
    article_id: int,
    content: str,
    principal: Principal,
    dispatcher: NotificationDispatcher,
) -> Article:
    article = load_article(db, article_id, principal)
    text = clean_content(content)

    now = utcnow()
    comment = Comment(user_id=principal.user_id, content=text, created_at=now, updated_at=now)
    article.comments.append(comment)
    commit(db, article)
    logger.info(f"Comment {comment.id} added to article {article_id} by user {principal.user_id}")

    dispatcher.dispatch(notifications.article_comment_events(article, comment, principal.user_id))
    return load_article(db, article_id, principal)


def edit_comment(db: Session, article_id: int, comment_id: int, content: str, principal: Principal) -> Article:
    article = load_article(db, article_id, principal)
    comment = _find_comment(article, comment_id)
    require(can_edit(comment.user_id, principal), "Only the author can edit this comment")

    comment.content = clean_content(content)
    comment.updated_at = utcnow()
    commit(db, article)
    return load_article(db, article_id, principal)


def delete_comment(db: Session, article_id: int, comment_id: int, principal: Principal) -> Article:
    article = load_article(db, article_id, principal)
    comment = _find_comment(article, comment_id)
    require(can_delete(comment.user_id, principal), "Not authorized to delete this comment")

    # delete-orphan cascade removes the replies too
    article.comments.remove(comment)
    commit(db, article)
    logger.info(f"Comment {comment_id} deleted from article {article_id} by user {principal.user_id}")
    return load_article(db, article_id, principal)


# ============ Replies ============

def add_reply(
    db: Session,
    article_id: int,
    comment_id: int,
    content: str,
    principal: Principal,
    dispatcher: NotificationDispatcher,
) -> Article:
    article = load_article(db, article_id, principal)
    comment = _find_comment(article, comment_id)
    text = clean_content(content)

    now = utcnow()
    reply = Reply(user_id=principal.user_id, content=text, created_at=now, updated_at=now)
    comment.replies.append(reply)
    commit(db, article)
    logger.info(f"Reply {reply.id} added to comment {comment_id} by user {principal.user_id}")

    dispatcher.dispatch(notifications.article_reply_events(article, comment, reply, principal.user_id))
    return load_article(db, article_id, principal)


def edit_reply(
    db: Session, article_id: int, comment_id: int, reply_id: int, content: str, principal: Principal
) -> Article:
    article = load_article(db, article_id, principal)
    reply = _find_reply(_find_comment(article, comment_id), reply_id)
    require(can_edit(reply.user_id, principal), "Only the author can edit this reply")

    reply.content = clean_content(content)
    reply.updated_at = utcnow()
    commit(db, article)
    return load_article(db, article_id, principal)


def delete_reply(db: Session, article_id: int, comment_id: int, reply_id: int, principal: Principal) -> Article:
    article = load_article(db, article_id, principal)
    comment = _find_comment(article, comment_id)
    reply = _find_reply(comment, reply_id)
    require(can_delete(reply.user_id, principal), "Not authorized to delete this reply")

    comment.replies.remove(reply)
    commit(db, article)
    return load_article(db, article_id, principal)


# ============ Likes ============

def toggle_like(
    db: Session,
    article_id: int,
    principal: Principal,
    dispatcher: NotificationDispatcher,
) -> Tuple[Article, bool]:
    """Like if absent, unlike if present. Returns the article and whether it is now liked"""
    article = load_article(db, article_id, principal)

    existing = next((like for like in article.likes if like.user_id == principal.user_id), None)
    if existing:
        article.likes.remove(existing)
        liked = False
    else:
        article.likes.append(ArticleLike(user_id=principal.user_id))
        liked = True

    commit(db, article)

    if liked:
        dispatcher.dispatch(notifications.article_like_events(article, principal.user_id))
    return load_article(db, article_id, principal), liked
