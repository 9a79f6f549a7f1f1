# ================================
# file: nav/__init__.py
# ================================
from nav.action_queue import ActionQueue, CancelledRunError

__all__ = ["ActionQueue", "CancelledRunError"]
