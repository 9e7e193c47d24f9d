from mikromatter.models.user import User
from mikromatter.models.post import Post
from mikromatter.models.comment import Comment
from mikromatter.models.engagement import Follow, Like, Repost
from mikromatter.models.hashtag import Hashtag, PostHashtag
from mikromatter.models.bookclub import Bookclub, BookclubMember

__all__ = ["User", "Post", "Comment", "Follow", "Like", "Repost", "Hashtag", "PostHashtag", "Bookclub", "BookclubMember"]
