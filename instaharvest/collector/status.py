"""
Engine Status - Read-only snapshot of the collection engine
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class EngineStatus:
    """State snapshot handed to observers; never aliases engine state"""
    is_running: bool = False
    message: str = 'Ready'
    count: int = 0
    current_target: Optional[str] = None
    current_username: Optional[str] = None
    stop_requested: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
