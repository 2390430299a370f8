from typing import Any, Dict

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from strawberry.fastapi import GraphQLRouter

from app.api.graphql.schema import schema
from app.core.config import get_settings
from app.db.base import get_db

settings = get_settings()

async def get_context(request: Request, db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    """
    Per-request resolver context: the request, one database session, and the
    owning user once IsAuthenticated has verified the bearer token.
    """
    return {
        "request": request,
        "db": db,
        "current_user": None,
    }

graphql_router = GraphQLRouter(
    schema,
    context_getter=get_context,
    graphiql=settings.GRAPHIQL_ENABLED,
)
