"""Business logic services.

Service-layer functions called by route handlers, the enhancement stream and
the sweeper. They own database access and never touch HTTP request objects.
"""

from groundup.services.bootstrap import ensure_user
from groundup.services.enhancements import create_enhancement, finalize_enhancement
from groundup.services.resumes import get_enhancement, get_owned_resume, list_resumes

__all__ = [
    "ensure_user",
    "create_enhancement",
    "finalize_enhancement",
    "get_owned_resume",
    "list_resumes",
    "get_enhancement",
]
