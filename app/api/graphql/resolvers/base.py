from typing import Any, TypeVar, Generic, Optional, Type
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from strawberry.types import Info

T = TypeVar('T')  # Type for the database model
G = TypeVar('G')  # Type for the GraphQL type

class BaseResolver(Generic[T, G]):
    """Base resolver class to standardize resolver patterns across all domain modules."""
    
    model_class: Type[T] = None
    graphql_type_class: Type[G] = None
    
    @classmethod
    def to_graphql_type(cls, model: T) -> G:
        """Convert a database model to a GraphQL type."""
        raise NotImplementedError("Subclasses must implement to_graphql_type method")
    
    @classmethod
    def get_db_from_info(cls, info: Info) -> AsyncSession:
        """Extract database session from GraphQL info context."""
        context = info.context
        return context.get("db")

    @classmethod
    def get_user_id_from_info(cls, info: Info) -> UUID:
        """Owning user resolved by the IsAuthenticated permission."""
        current_user = info.context.get("current_user")
        if current_user is None:
            raise ValueError("Authentication required")
        return current_user.id

    @staticmethod
    def parse_id(value: Any, name: str = "id") -> UUID:
        try:
            return value if isinstance(value, UUID) else UUID(str(value))
        except ValueError:
            raise ValueError(f"Invalid {name}: {value}")

    @staticmethod
    def optional_id(value: Optional[Any]) -> Optional[str]:
        return str(value) if value is not None else None
