from .iam import (
    client_user_association as client_user_association,
    User as User,
    Client as Client,
    AccessToken as AccessToken,
)

from .post_categories import PostCategory as PostCategory
from .posts import Post as Post
