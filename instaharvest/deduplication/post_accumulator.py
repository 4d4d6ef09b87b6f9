import logging
from typing import Dict, Iterable, List, Optional

from ..extraction.post import Post

logger = logging.getLogger(__name__)


class PostAccumulator:
    """Insertion-ordered, url-keyed set of posts for one running job

    Growth is monotone: posts are only ever added, and the first post seen
    for a url is the one that is kept.
    """

    def __init__(self):
        self._posts: Dict[str, Post] = {}

        # Statistics
        self.stats = {
            'posts_offered': 0,
            'duplicate_posts': 0,
            'unique_posts': 0
        }

    def __len__(self) -> int:
        return len(self._posts)

    def __contains__(self, url: str) -> bool:
        return url in self._posts

    def add(self, post: Post) -> bool:
        """
        Add a post unless its url was already collected

        Returns:
            True when the post was new
        """
        self.stats['posts_offered'] += 1
        if post.url in self._posts:
            self.stats['duplicate_posts'] += 1
            return False

        self._posts[post.url] = post
        self.stats['unique_posts'] += 1
        return True

    def merge(self, posts: Iterable[Post]) -> int:
        """Merge a tick's posts; returns how many were new"""
        return sum(1 for post in posts if self.add(post))

    def get(self, url: str) -> Optional[Post]:
        return self._posts.get(url)

    def snapshot(self) -> List[Post]:
        """Copy of the collected posts in discovery order"""
        return list(self._posts.values())

    def clear(self):
        self._posts.clear()
        for key in self.stats:
            self.stats[key] = 0
