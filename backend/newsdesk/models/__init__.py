"""数据模型"""
from .user import User
from .setting import Setting
from .category import Category
from .tag import Tag, news_tags
from .media import Media
from .news import News, NewsView
from .comment import Comment
from .like import Like
from .rss_feed import RssFeed
from .advertisement import Advertisement

__all__ = [
    "User",
    "Setting",
    "Category",
    "Tag",
    "news_tags",
    "Media",
    "News",
    "NewsView",
    "Comment",
    "Like",
    "RssFeed",
    "Advertisement",
]
