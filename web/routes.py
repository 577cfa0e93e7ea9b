"""
web/routes.py -- Jinja2 template routes for the verifier pages.

These routes serve server-rendered HTML shells. The pages talk to the JSON
and GraphQL endpoints under /api from the browser; no page handler touches a
store. The only server-side decision here is the route guard.

Routes:
  GET  /           -- redirect to /verifier
  GET  /login      -- login form (redirects to /verifier when signed in)
  GET  /register   -- registration form
  GET  /verifier   -- address verifier and attempt log (auth required)
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from auth.dependencies import try_get_session

logger = logging.getLogger("verifier.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
# layout.html calls this to decide between the sign-in link and the logout button.
templates.env.globals["try_get_session"] = try_get_session
router = APIRouter()


def _require_auth(request: Request) -> Optional[RedirectResponse]:
    """Return a redirect to /login when the request has no valid session.

    Call at the top of protected route handlers:
        if redirect := _require_auth(request):
            return redirect
    """
    if try_get_session(request) is None:
        return RedirectResponse("/login", status_code=302)
    return None


@router.get("/", response_class=HTMLResponse)
def index() -> RedirectResponse:
    return RedirectResponse("/verifier", status_code=302)


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    """Render the login page; signed-in users go straight to the verifier."""
    if try_get_session(request) is not None:
        return RedirectResponse("/verifier", status_code=302)
    return templates.TemplateResponse(request, "login.html", {})


@router.get("/register", response_class=HTMLResponse)
def register_form(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(request, "register.html", {})


@router.get("/verifier", response_class=HTMLResponse)
def verifier_page(request: Request) -> HTMLResponse:
    if redirect := _require_auth(request):
        return redirect
    session = try_get_session(request)
    return templates.TemplateResponse(request, "verifier.html", {"username": session.username})
