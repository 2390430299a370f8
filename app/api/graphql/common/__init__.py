# Shared Strawberry pagination types
from app.api.graphql.common.connection import (
    Connection,
    Edge,
    PageInfo,
    build_connection,
    start_offset,
)

__all__ = [
    'Connection', 'Edge', 'PageInfo', 'build_connection', 'start_offset',
]
