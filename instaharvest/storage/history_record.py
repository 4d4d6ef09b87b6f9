from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Tuple

from ..extraction.post import Post


@dataclass(frozen=True)
class HistoryRecord:
    """A committed scraping job

    Records written by this package always satisfy
    count == len(items) == len(links). Legacy records only carry links, in
    which case items is empty and count follows the links.
    """
    id: int
    date: str
    username: str
    count: int
    items: Tuple[Post, ...] = ()
    links: Tuple[str, ...] = ()

    @classmethod
    def create(cls, record_id: int, username: str, posts: Iterable[Post],
               date: Optional[str] = None) -> 'HistoryRecord':
        """Build a record from collected posts, dropping repeated urls"""
        unique = {}
        for post in posts:
            unique.setdefault(post.url, post)
        items = tuple(unique.values())

        return cls(
            id=record_id,
            date=date or datetime.now(timezone.utc).isoformat(),
            username=username,
            count=len(items),
            items=items,
            links=tuple(unique.keys()),
        )

    @property
    def has_rich_items(self) -> bool:
        return bool(self.items)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'date': self.date,
            'username': self.username,
            'count': self.count,
            'items': [post.to_dict() for post in self.items],
            'links': list(self.links),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HistoryRecord':
        """Load a stored record; older records used "posts" or only "links" """
        raw_items = data.get('items')
        if raw_items is None:
            raw_items = data.get('posts') or []

        items = tuple(Post.from_dict(item) for item in raw_items)
        links = tuple(data.get('links') or (post.url for post in items))

        return cls(
            id=int(data['id']),
            date=data.get('date') or '',
            username=data.get('username') or 'unknown',
            count=len(items) if items else len(links),
            items=items,
            links=links,
        )


@dataclass(frozen=True)
class PendingJob:
    """The most recent stopped or finished job, awaiting an explicit commit

    record_id is set when the same posts were already committed at the end
    of a finished run; committing it again resolves to that record.
    """
    username: str
    items: Tuple[Post, ...] = field(default_factory=tuple)
    record_id: Optional[int] = None

    @property
    def count(self) -> int:
        return len(self.items)
