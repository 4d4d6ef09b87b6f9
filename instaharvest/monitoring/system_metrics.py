from dataclasses import dataclass


@dataclass
class SystemMetrics:
    """Host and process resource usage while a job runs"""
    cpu_percent: float = 0.0
    memory_percent: float = 0.0
    process_rss_mb: float = 0.0
    child_processes: int = 0  # browser helpers spawned by Playwright
    open_files: int = 0
