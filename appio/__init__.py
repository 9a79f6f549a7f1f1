# ================================
# file: appio/__init__.py
# ================================
from appio.logger import RunLogger, log_to_file

__all__ = ["RunLogger", "log_to_file"]
