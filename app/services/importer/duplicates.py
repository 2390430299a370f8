import logging
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.result import Err, Ok, Result
from app.crud import order as order_crud
from app.schemas.imports import DuplicateGroup, DuplicateOrderCodes, ValidRow
from app.services.exceptions import DuplicateCheckError
from app.utils.chunk import chunked
from app.utils.errors import extract_error_message

logger = logging.getLogger(__name__)
settings = get_settings()


def in_batch_duplicates(rows: Sequence[ValidRow]) -> List[DuplicateGroup]:
    """Order codes appearing more than once in the batch, with every row number."""
    positions: Dict[str, List[int]] = {}
    for valid in rows:
        code = valid.row.order_code
        if code:
            positions.setdefault(code, []).append(valid.row_number)
    return [
        DuplicateGroup(order_code=code, rows=numbers)
        for code, numbers in positions.items()
        if len(numbers) > 1
    ]


async def persisted_duplicates(
    db: AsyncSession,
    user_id: UUID,
    codes: Sequence[str],
    chunk_size: Optional[int] = None,
) -> List[str]:
    """Look up which codes the user already has, one chunk at a time.

    Raises:
        DuplicateCheckError: A chunk lookup failed; the caller must not insert
    """
    size = chunk_size or settings.IMPORT_CHUNK_SIZE
    unique_codes = list(dict.fromkeys(code for code in codes if code))
    existing: List[str] = []
    for chunk in chunked(unique_codes, size):
        try:
            found = await order_crud.find_existing_order_codes(db, user_id, chunk)
        except SQLAlchemyError as e:
            logger.error(f"Duplicate check failed for a chunk of {len(chunk)} code(s)", exc_info=True)
            raise DuplicateCheckError(
                f"Could not verify existing Order IDs: {extract_error_message(e)}", chunk
            ) from e
        existing.extend(found)
    # Keep the batch's order in the report
    found_set = set(existing)
    return [code for code in unique_codes if code in found_set]


async def find_duplicate_order_codes(
    db: AsyncSession,
    user_id: UUID,
    rows: Sequence[ValidRow],
    chunk_size: Optional[int] = None,
) -> Result[None, DuplicateOrderCodes]:
    in_file = in_batch_duplicates(rows)
    existing = await persisted_duplicates(db, user_id, [valid.row.order_code for valid in rows], chunk_size)
    if in_file or existing:
        logger.info(
            f"Duplicate Order IDs: {len(in_file)} repeated in file, {len(existing)} already stored"
        )
        return Err(DuplicateOrderCodes(in_file=in_file, existing=existing))
    return Ok(None)
