"""
Models package initialization
"""

from .profile import Profile
from .follow import Follow
from .post import Post
from .comment import Comment
from .reaction import PostLike, CommentLike
from .bookmark import Bookmark
from .notification import Notification
from .report import Report

__all__ = [
    "Profile", "Follow", "Post", "Comment",
    "PostLike", "CommentLike", "Bookmark", "Notification", "Report",
]
