from dataclasses import dataclass, asdict
from typing import Any, Dict


@dataclass
class Settings:
    """Process-wide scraping settings persisted across jobs"""
    auto_scroll: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Settings':
        data = data or {}
        auto_scroll = data.get('auto_scroll', data.get('autoScroll', True))
        return cls(auto_scroll=bool(auto_scroll))
