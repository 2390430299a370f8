from fastapi import HTTPException, Request, status
from pydantic import BaseModel
from typing import Optional
from uuid import UUID

from app.core.security import verify_token

class TokenData(BaseModel):
    user_id: Optional[UUID] = None

class CurrentUser(BaseModel):
    id: UUID

async def get_current_user(request: Request) -> CurrentUser:
    """
    Validate the access token and return the owning user it was issued for.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    
    # Extract token from Authorization header
    auth_header = request.headers.get("authorization")
    if not auth_header or not auth_header.lower().startswith("bearer "):
        raise credentials_exception
    token = auth_header.split(" ", 1)[1].strip()
    # Validate token structure before decoding
    if len(token.split('.')) != 3:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token format",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    try:
        payload = verify_token(token)
        user_id: str = payload.get("sub")
        if user_id is None:
            raise credentials_exception
        token_data = TokenData(user_id=UUID(user_id))
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token format: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    return CurrentUser(id=token_data.user_id)
