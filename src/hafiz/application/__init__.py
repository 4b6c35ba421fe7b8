# Application Package
from .engine import ReviewEngine
from .progress import ProgressTracker
from .review_queue import ReviewQueue

__all__ = ["ReviewEngine", "ProgressTracker", "ReviewQueue"]
