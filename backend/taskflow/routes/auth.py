from typing import Optional

from fastapi import APIRouter, Depends, Form, Response

from ..auth import RequestContext, get_request_context
from .. import auth, schemas

router = APIRouter(prefix="/api/auth", tags=["auth"])

@router.post("/signup", response_model=schemas.ActionResult)
def signup(
    response: Response,
    email: str = Form(""),
    password: str = Form(""),
    name: str = Form(""),
    ctx: RequestContext = Depends(get_request_context),
):
    result, token = auth.signup(ctx.db, email, password, name)
    if token:
        auth.set_session_cookie(response, token)
    return result

@router.post("/login", response_model=schemas.ActionResult)
def login(
    response: Response,
    email: str = Form(""),
    password: str = Form(""),
    ctx: RequestContext = Depends(get_request_context),
):
    result, token = auth.login(ctx.db, email, password)
    if token:
        auth.set_session_cookie(response, token)
    return result

@router.post("/logout", response_model=schemas.ActionResult)
def logout(response: Response, ctx: RequestContext = Depends(get_request_context)):
    auth.logout(ctx.db, ctx.token)
    auth.clear_session_cookie(response)
    return schemas.ActionResult(success=True, message="Logged out")

@router.get("/me", response_model=Optional[schemas.CurrentUser])
def me(ctx: RequestContext = Depends(get_request_context)):
    return ctx.user
