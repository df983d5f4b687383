"""点赞相关的Pydantic模式"""
from typing import Literal
from pydantic import BaseModel


class ReactionRequest(BaseModel):
    type: Literal["like", "dislike"]


class ReactionCounts(BaseModel):
    likes_count: int
    dislikes_count: int
    user_reaction: str | None = None


class ReactionResponse(ReactionCounts):
    action: Literal["added", "removed", "changed"]
