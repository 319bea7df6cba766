from fastapi import APIRouter, Depends

from ..auth import RequestContext, guard
from .. import actions, schemas

router = APIRouter(prefix="/api", tags=["team"])

@router.get("/stats", response_model=schemas.TeamStats)
def team_stats(ctx: RequestContext = Depends(guard)):
    return actions.get_team_stats(ctx.db)

@router.get("/users", response_model=list[schemas.SafeUser])
def list_users(ctx: RequestContext = Depends(guard)):
    return actions.get_all_users(ctx.db)
