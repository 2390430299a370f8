import logging
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.result import Err, Ok, Result
from app.schemas.imports import (
    Correction,
    ImportIssue,
    ImportPayload,
    ImportReport,
    IncompleteCorrections,
    InvalidRow,
    MissingProducts,
    NeedsCorrection,
    NoRows,
    RowError,
    ValidRow,
)
from app.services.events.event_log import EventLog, EventType
from app.services.importer.duplicates import find_duplicate_order_codes
from app.services.importer.headers import validate_headers
from app.services.importer.parser import parse_spreadsheet
from app.services.importer.rows import map_row
from app.services.importer.validation import (
    missing_products,
    unmatched_product_names,
    validate_row,
    validate_rows,
)
from app.services.invoices.rules import InvoiceRuleEngine
from app.services.orders.order_service import OrderService
from app.services.products.catalog import ProductCatalog
from app.services.risk.evaluator import RiskEvaluator, evaluate_risk
from app.utils.errors import extract_error_message
from app.utils.text import normalize_text

logger = logging.getLogger(__name__)

ImportOutcome = Result[ImportReport, ImportIssue]

IMPORT_SOURCE = "import"


def order_values(valid: ValidRow) -> Dict[str, Any]:
    """Column values for the order created from a validated row."""
    row = valid.row
    return {
        "order_code": row.order_code,
        "customer_name": row.customer_name,
        "phone": row.phone,
        "address": row.address,
        "address_detail": row.address_detail,
        "ward": row.ward,
        "district": row.district,
        "province": row.province,
        "product_id": valid.product_id,
        "product_name": valid.product_name,
        "amount": row.amount,
        "discount_amount": row.discount_amount,
        "shipping_fee": row.shipping_fee,
        "payment_method": row.payment_method,
        "channel": row.channel,
        "source": row.source,
        "order_date": row.order_date,
        "gender": row.gender,
        "birth_year": row.birth_year,
    }


class OrderImportPipeline:
    """Bulk order import from a spreadsheet.

    Stages run strictly in sequence: parse, header validation, row mapping,
    row validation with product resolution, missing-product detection,
    duplicate detection, then per-row insert. Every stage before insert is
    all-or-nothing and reports its problem as an ``Err`` value; only the
    insert stage touches the database, and one failing row does not stop the
    others.
    """

    def __init__(
        self,
        db: AsyncSession,
        user_id: UUID,
        risk_evaluator: RiskEvaluator = evaluate_risk,
        chunk_size: Optional[int] = None,
    ):
        self.db = db
        self.user_id = user_id
        self.risk_evaluator = risk_evaluator
        self.chunk_size = chunk_size

    def read_file(self, content: bytes, filename: str) -> Result[ImportPayload, ImportIssue]:
        """Parse, validate headers and map rows (no database access)."""
        parsed = parse_spreadsheet(content, filename)
        if isinstance(parsed, Err):
            return parsed

        headers = validate_headers(parsed.value.headers)
        if isinstance(headers, Err):
            logger.info(
                f"Rejected {filename}: missing={headers.error.missing_columns} "
                f"misnamed={[c.actual for c in headers.error.misnamed_columns]}"
            )
            return headers

        rows = [
            map_row(index, record, headers.value)
            for index, record in enumerate(parsed.value.records, start=1)
        ]
        if not rows:
            return Err(NoRows())
        return Ok(ImportPayload(filename=filename, rows=rows))

    async def run(self, content: bytes, filename: str) -> ImportOutcome:
        """Import an uploaded spreadsheet end to end."""
        payload = self.read_file(content, filename)
        if isinstance(payload, Err):
            return payload
        return await self.resume(payload.value)

    async def resume(self, payload: ImportPayload) -> ImportOutcome:
        """Continue an import from row validation with already-parsed rows.

        Used after the operator created the products a previous attempt
        reported missing; the file is not parsed again.
        """
        if not payload.rows:
            return Err(NoRows())

        catalog = await ProductCatalog.active_by_name(self.db, self.user_id)
        valid, invalid = validate_rows(payload.rows, catalog)
        logger.info(f"Validated {len(payload.rows)} row(s): {len(valid)} valid, {len(invalid)} invalid")
        if invalid:
            return Err(NeedsCorrection(
                payload=payload,
                valid_rows=valid,
                invalid_rows=invalid,
                unmatched_products=unmatched_product_names(invalid, catalog),
            ))

        # Fresh read: the catalog may have changed while rows were validated
        fresh_catalog = await ProductCatalog.active_by_name(self.db, self.user_id)
        missing = missing_products(valid, fresh_catalog)
        if missing:
            logger.info(f"Import suspended: {len(missing)} product(s) missing from catalog")
            return Err(MissingProducts(missing_products=missing, payload=payload))

        return await self.commit_batch(valid)

    async def apply_corrections(self, payload: ImportPayload, corrections: Sequence[Correction]) -> ImportOutcome:
        """Re-enter an import once the operator assigned products to invalid rows.

        Every invalid row needs a correction naming an active product. Corrected
        rows are validated again, merged with the rows that were valid all along
        and go through duplicate detection and insert as one batch.
        """
        catalog = await ProductCatalog.active_by_name(self.db, self.user_id)
        valid, invalid = validate_rows(payload.rows, catalog)

        by_row = {correction.row_number: correction for correction in corrections}
        chosen = await ProductCatalog.active_by_id(
            self.db, self.user_id, [correction.product_id for correction in corrections]
        )

        corrected: List[ValidRow] = []
        still_invalid: List[InvalidRow] = []
        for invalid_row in invalid:
            correction = by_row.get(invalid_row.row_number)
            if correction is None or correction.product_id not in chosen:
                still_invalid.append(invalid_row.model_copy(
                    update={"corrected_product_id": correction.product_id if correction else None}
                ))
                continue

            product = chosen[correction.product_id]
            updates: Dict[str, Any] = {"product": product.name}
            for field in ("order_code", "customer_name", "phone", "amount"):
                value = getattr(correction, field)
                if value is not None:
                    updates[field] = value
            row = invalid_row.row.model_copy(update=updates)

            result = validate_row(row, {normalize_text(product.name): product})
            if isinstance(result, InvalidRow):
                still_invalid.append(result.model_copy(update={"corrected_product_id": product.id}))
            else:
                corrected.append(result)

        if still_invalid:
            return Err(IncompleteCorrections(invalid_rows=still_invalid))

        batch = sorted(valid + corrected, key=lambda item: item.row_number)
        return await self.commit_batch(batch)

    async def commit_batch(self, rows: Sequence[ValidRow]) -> ImportOutcome:
        """Reject the batch on any duplicate order code, otherwise insert it."""
        duplicates = await find_duplicate_order_codes(self.db, self.user_id, rows, self.chunk_size)
        if isinstance(duplicates, Err):
            return duplicates
        return Ok(await self.insert_rows(rows))

    async def insert_rows(self, rows: Sequence[ValidRow]) -> ImportReport:
        """Insert rows one by one; a failing row is recorded and skipped."""
        report = ImportReport()
        for valid in rows:
            row = valid.row
            try:
                order = await OrderService.insert_new_order(
                    self.db, self.user_id, order_values(valid), self.risk_evaluator
                )
            except Exception as e:
                await self.db.rollback()
                message = extract_error_message(e)
                logger.error(f"Row {row.row_number} ({row.order_code}) failed to insert: {message}", exc_info=True)
                report.failed_count += 1
                report.errors.append(RowError(
                    row_number=row.row_number,
                    order_code=row.order_code,
                    customer_name=row.customer_name,
                    error=message,
                ))
                continue

            # Rollbacks below expire the instance; only these values are used after insert
            order_id = order.id
            order_code = order.order_code
            imported = {
                "order_code": order_code,
                "row_number": row.row_number,
                "status": order.status,
                "risk_level": order.risk_level,
            }
            report.success_count += 1
            report.order_ids.append(order_id)

            # The order is committed; later steps can be re-driven by reconcile
            try:
                await InvoiceRuleEngine.apply(self.db, order, IMPORT_SOURCE)
            except Exception:
                await self.db.rollback()
                logger.error(f"Invoice rules failed for imported order {order_code}", exc_info=True)
            try:
                await EventLog.append(self.db, order_id, EventType.ORDER_IMPORTED, imported, IMPORT_SOURCE)
            except Exception:
                await self.db.rollback()
                logger.error(f"Could not record import event for order {order_code}", exc_info=True)

        logger.info(f"Import finished: {report.success_count} inserted, {report.failed_count} failed")
        return report
