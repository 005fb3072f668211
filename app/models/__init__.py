from .account import Account, AccountPreferences, AccountMetadata, Role
from .session import LoginSession
from .verification_token import VerificationToken, TokenType
from .post import Post, Category, Tag, PostCategoryLink, PostTagLink, PostView
from .comment import Comment

__all__ = [
    "Account",
    "AccountPreferences",
    "AccountMetadata",
    "Role",
    "LoginSession",
    "VerificationToken",
    "TokenType",
    "Post",
    "Category",
    "Tag",
    "PostCategoryLink",
    "PostTagLink",
    "PostView",
    "Comment",
]
