"""
Extraction Result - Data structure for one tick's extraction output
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from .post import Post


class ExtractionStrategy(Enum):
    """Which layer of the heuristic produced the posts"""
    CONTAINERS = "containers"            # Surface-specific containers matched
    ANCHOR_FALLBACK = "anchor_fallback"  # No containers, bare post anchors only
    EMPTY = "empty"                      # Nothing post-like on the page


@dataclass
class ExtractionResult:
    """Result of extracting a single page snapshot"""
    items: List[Post] = field(default_factory=list)
    scroll_height_before: int = 0
    scroll_height_after: int = 0
    strategy: ExtractionStrategy = ExtractionStrategy.EMPTY
    fallback_count: int = 0

    @property
    def end_of_page(self) -> bool:
        return self.scroll_height_before == self.scroll_height_after

    @property
    def matched_markup(self) -> bool:
        """False when the heuristic did not recognise this page's markup"""
        return self.strategy == ExtractionStrategy.CONTAINERS
