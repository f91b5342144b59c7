from .bootstrap import create_app
from .service import WdgService

__all__ = ["WdgService", "create_app"]
