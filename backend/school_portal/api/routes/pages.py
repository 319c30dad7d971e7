"""Dashboard landing routes.

The frontend renders the dashboards; these endpoints give the request gate
something to forward to and tell the client who the gate let in.
"""

from typing import Optional

from core.errors import NotFoundError
from fastapi import APIRouter, Request

router = APIRouter(tags=["pages"])

DASHBOARD_SECTIONS = ("admin", "teacher", "student", "parent", "list", "profile")
PUBLIC_PAGES = ("sign-in", "sign-up", "forgot-password", "admin-login")


def _landing(request: Request, page: str) -> dict:
    user_type = getattr(request.state, "user_type", None)
    return {
        "page": page,
        "userId": getattr(request.state, "user_id", None),
        "userType": user_type.value if user_type is not None else None,
    }


@router.get("/")
async def root():
    return {"message": "School Portal Backend"}


@router.get("/{section}")
@router.get("/{section}/{rest:path}")
async def dashboard(request: Request, section: str, rest: Optional[str] = None):
    if section not in DASHBOARD_SECTIONS + PUBLIC_PAGES:
        raise NotFoundError("Page not found")
    page = f"{section}/{rest}" if rest else section
    return _landing(request, page)
