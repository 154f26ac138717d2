# Models module
from mindcare.models.user import User
from mindcare.models.article import Article, ArticleLike
from mindcare.models.comment import Comment, Reply
from mindcare.models.forum import ForumThread, ForumReply, ForumReplyLike
from mindcare.models.consultation import Consultation, ConsultationMessage
from mindcare.models.notification import Notification

__all__ = [
    "User", "Article", "ArticleLike", "Comment", "Reply",
    "ForumThread", "ForumReply", "ForumReplyLike",
    "Consultation", "ConsultationMessage", "Notification",
]
