from pydantic import BaseModel, Field
from typing import Annotated, List, Literal, Optional, Union
from datetime import datetime
from decimal import Decimal
import uuid

# One spreadsheet data row mapped onto canonical fields
class ImportRow(BaseModel):
    row_number: int
    order_code: str = ""
    customer_name: str = ""
    phone: str = ""
    product: str = ""
    amount: Optional[Decimal] = None
    payment_method: str = "COD"
    address: Optional[str] = None
    address_detail: Optional[str] = None
    ward: Optional[str] = None
    district: Optional[str] = None
    province: Optional[str] = None
    channel: Optional[str] = None
    source: Optional[str] = None
    order_date: Optional[datetime] = None
    gender: Optional[str] = None
    birth_year: Optional[int] = None
    discount_amount: Optional[Decimal] = None
    shipping_fee: Optional[Decimal] = None

class ValidRow(BaseModel):
    kind: Literal["valid"] = "valid"
    row: ImportRow
    product_id: uuid.UUID
    product_name: str

    @property
    def row_number(self) -> int:
        return self.row.row_number

class InvalidRow(BaseModel):
    kind: Literal["invalid"] = "invalid"
    row: ImportRow
    reason: str
    # Filled in by the operator during manual correction
    corrected_product_id: Optional[uuid.UUID] = None

    @property
    def row_number(self) -> int:
        return self.row.row_number

ValidatedRow = Annotated[Union[ValidRow, InvalidRow], Field(discriminator="kind")]

# Parsed rows kept around so an import can resume without re-reading the file
class ImportPayload(BaseModel):
    filename: Optional[str] = None
    rows: List[ImportRow] = Field(default_factory=list)

class MisnamedColumn(BaseModel):
    actual: str
    expected: str

class DuplicateGroup(BaseModel):
    order_code: str
    rows: List[int]

class UnreadableFile(BaseModel):
    kind: Literal["unreadable_file"] = "unreadable_file"
    message: str

class HeaderIssue(BaseModel):
    kind: Literal["header"] = "header"
    missing_columns: List[str] = Field(default_factory=list)
    misnamed_columns: List[MisnamedColumn] = Field(default_factory=list)

class NoRows(BaseModel):
    kind: Literal["no_rows"] = "no_rows"

class NeedsCorrection(BaseModel):
    kind: Literal["needs_correction"] = "needs_correction"
    payload: ImportPayload
    valid_rows: List[ValidRow] = Field(default_factory=list)
    invalid_rows: List[InvalidRow] = Field(default_factory=list)
    unmatched_products: List[str] = Field(default_factory=list)

class MissingProducts(BaseModel):
    kind: Literal["missing_products"] = "missing_products"
    missing_products: List[str]
    payload: ImportPayload

class DuplicateOrderCodes(BaseModel):
    kind: Literal["duplicates"] = "duplicates"
    in_file: List[DuplicateGroup] = Field(default_factory=list)
    existing: List[str] = Field(default_factory=list)

class IncompleteCorrections(BaseModel):
    kind: Literal["incomplete_corrections"] = "incomplete_corrections"
    invalid_rows: List[InvalidRow] = Field(default_factory=list)

ImportIssue = Annotated[
    Union[
        UnreadableFile,
        HeaderIssue,
        NoRows,
        NeedsCorrection,
        MissingProducts,
        DuplicateOrderCodes,
        IncompleteCorrections,
    ],
    Field(discriminator="kind"),
]

class RowError(BaseModel):
    row_number: int
    order_code: str
    customer_name: str
    error: str

class ImportReport(BaseModel):
    success_count: int = 0
    failed_count: int = 0
    errors: List[RowError] = Field(default_factory=list)
    order_ids: List[uuid.UUID] = Field(default_factory=list)

# Operator's fix for one invalid row; unset fields keep the file's value
class Correction(BaseModel):
    row_number: int
    product_id: uuid.UUID
    order_code: Optional[str] = None
    customer_name: Optional[str] = None
    phone: Optional[str] = None
    amount: Optional[Decimal] = None

class CorrectionRequest(BaseModel):
    payload: ImportPayload
    corrections: List[Correction] = Field(default_factory=list)

class Notification(BaseModel):
    level: Literal["success", "error", "warning"]
    message: str
    # Long reports stay on screen until dismissed
    persistent: bool = False

class ImportResponse(BaseModel):
    ok: bool
    notification: Notification
    report: Optional[ImportReport] = None
    issue: Optional[ImportIssue] = None
