import strawberry
from typing import Any
from fastapi import HTTPException

from app.core.auth import get_current_user


class IsAuthenticated(strawberry.BasePermission):
    message = "Authentication required"

    async def has_permission(
        self, 
        source: Any, 
        info: strawberry.types.Info, 
        **kwargs
    ) -> bool:
        context = info.context
        if context.get("current_user") is not None:
            return True

        # Resolve the bearer token once per request and share it with resolvers
        try:
            context["current_user"] = await get_current_user(context["request"])
        except HTTPException:
            return False
        return True
