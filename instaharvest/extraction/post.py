from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional


class PostType(Enum):
    """Kind of content a post URL points at"""
    POST = "post"
    REEL = "reel"
    STORY = "story"


class PageSource(Enum):
    """Surface the post was discovered on"""
    PROFILE_GRID = "profile_grid"
    REELS_TAB = "reels_tab"
    OTHER = "other"


# Older records used these page-type names
_LEGACY_PAGE_SOURCES = {
    'main_profile': PageSource.PROFILE_GRID,
}


@dataclass(frozen=True)
class Post:
    """One harvested post; identity is the canonical url"""
    url: str
    author: str = 'Unknown'
    caption: str = ''
    thumbnail_url: Optional[str] = None
    likes: int = 0
    comments: int = 0
    views: Optional[int] = None
    created_at: str = ''
    type: PostType = PostType.POST
    page_source: PageSource = PageSource.OTHER

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['type'] = self.type.value
        data['page_source'] = self.page_source.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Post':
        """Build a post from a stored dict, tolerating missing or camelCase fields"""
        raw_source = data.get('page_source', data.get('pageType')) or PageSource.OTHER.value
        if raw_source in _LEGACY_PAGE_SOURCES:
            page_source = _LEGACY_PAGE_SOURCES[raw_source]
        else:
            try:
                page_source = PageSource(raw_source)
            except ValueError:
                page_source = PageSource.OTHER

        try:
            post_type = PostType(data.get('type') or PostType.POST.value)
        except ValueError:
            post_type = PostType.POST

        views = data.get('views')
        return cls(
            url=data['url'],
            author=data.get('author') or 'Unknown',
            caption=data.get('caption') or '',
            thumbnail_url=data.get('thumbnail_url', data.get('thumbnailUrl')) or None,
            likes=int(data.get('likes') or 0),
            comments=int(data.get('comments') or 0),
            views=int(views) if views not in (None, '') else None,
            created_at=data.get('created_at', data.get('createdAt')) or '',
            type=post_type,
            page_source=page_source,
        )
