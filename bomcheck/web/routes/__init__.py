"""bomcheck API route modules.

Each module exports a `router` object (APIRouter instance); the app in
bomcheck.web.app includes them. Shared dependencies live in
bomcheck.web.dependencies.
"""

from bomcheck.web.routes import analysis, compliance, health

__all__ = ["analysis", "compliance", "health"]
