import base64
import binascii
from typing import TypeVar, Generic, List, Optional, Sequence
import strawberry

T = TypeVar('T')  # Type for the node in the connection

OFFSET_PREFIX = "offset:"

@strawberry.type
class PageInfo:
    """Information about pagination in a connection."""
    has_next_page: bool
    has_previous_page: bool
    start_cursor: Optional[str] = None
    end_cursor: Optional[str] = None

@strawberry.type
class Edge(Generic[T]):
    node: T
    cursor: str

@strawberry.type
class Connection(Generic[T]):
    """One page of nodes plus the total count of the filtered set."""
    edges: List[Edge[T]]
    page_info: PageInfo
    total_count: int

def encode_cursor(value: str) -> str:
    return base64.b64encode(value.encode()).decode()

def decode_cursor(cursor: str) -> str:
    try:
        return base64.b64decode(cursor.encode(), validate=True).decode()
    except (binascii.Error, ValueError, UnicodeDecodeError) as e:
        raise ValueError(f"Invalid cursor: {cursor}") from e

def offset_cursor(offset: int) -> str:
    return encode_cursor(f"{OFFSET_PREFIX}{offset}")

def start_offset(after: Optional[str]) -> int:
    """Offset of the first row after ``after``; 0 when no cursor is given."""
    if not after:
        return 0
    value = decode_cursor(after)
    if not value.startswith(OFFSET_PREFIX):
        raise ValueError(f"Invalid cursor: {after}")
    position = value[len(OFFSET_PREFIX):]
    if not position.isdigit():
        raise ValueError(f"Invalid cursor: {after}")
    return int(position) + 1

def build_connection(nodes: Sequence[T], offset: int, total_count: int) -> Connection[T]:
    """Wrap one page of already-converted nodes starting at ``offset``."""
    edges = [
        Edge(node=node, cursor=offset_cursor(offset + index))
        for index, node in enumerate(nodes)
    ]
    page_info = PageInfo(
        has_next_page=offset + len(edges) < total_count,
        has_previous_page=offset > 0,
        start_cursor=edges[0].cursor if edges else None,
        end_cursor=edges[-1].cursor if edges else None,
    )
    return Connection(edges=edges, page_info=page_info, total_count=total_count)
