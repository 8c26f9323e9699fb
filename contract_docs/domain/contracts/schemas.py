"""Contract document schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

from .placeholders import TEXT_PLACEHOLDERS

DATE_FIELDS = ("contract_date", "contract_start_date", "contract_end_date")


def _validate_iso_date(value: str) -> str:
    if value:
        try:
            date.fromisoformat(value)
        except ValueError as e:
            raise ValueError(f"'{value}' is not an ISO-8601 date (YYYY-MM-DD)") from e
    return value


def format_amount(value: float) -> str:
    """Render a salary without a trailing .0 for whole amounts"""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


class ContractData(BaseModel):
    """
    Everything a backend needs to render one contract.
    Built once per generation request and never mutated by a backend.
    """

    model_config = ConfigDict(frozen=True)

    # Contract identity
    contract_id: str = ""
    contract_number: str
    contract_type: str = ""
    contract_date: str = ""

    # Promoter
    promoter_name_en: str = ""
    promoter_name_ar: str = ""
    promoter_email: str = ""
    promoter_mobile_number: str = ""
    promoter_id_card_number: str = ""
    promoter_passport_number: Optional[str] = None
    promoter_id_card_url: Optional[str] = None
    promoter_passport_url: Optional[str] = None

    # First party (client)
    first_party_name_en: str = ""
    first_party_name_ar: str = ""
    first_party_crn: str = ""
    first_party_email: str = ""
    first_party_phone: str = ""

    # Second party (employer)
    second_party_name_en: str = ""
    second_party_name_ar: str = ""
    second_party_crn: str = ""
    second_party_email: str = ""
    second_party_phone: str = ""

    # Engagement terms
    job_title: str = ""
    department: str = ""
    work_location: str = ""
    basic_salary: float = Field(default=0, ge=0)
    currency: str = ""
    contract_start_date: str = ""
    contract_end_date: str = ""
    special_terms: Optional[str] = None

    @field_validator(*DATE_FIELDS)
    @classmethod
    def check_iso_date(cls, value: str) -> str:
        return _validate_iso_date(value)

    def placeholder_values(self) -> dict[str, str]:
        """Map every text placeholder name to its display string ("" when absent)"""
        values = {}
        for name in TEXT_PLACEHOLDERS:
            if name == "basic_salary":
                values[name] = format_amount(self.basic_salary)
            else:
                values[name] = getattr(self, name) or ""
        return values

    @property
    def has_special_terms(self) -> bool:
        return bool(self.special_terms and self.special_terms.strip())


class ContractGenerateRequest(BaseModel):
    """Schema for a contract document generation request"""

    contract_id: Optional[str] = None
    contract_type: str = Field(min_length=1)

    promoter_name_en: str = Field(min_length=1)
    promoter_name_ar: Optional[str] = None
    promoter_email: Optional[str] = None
    promoter_mobile_number: Optional[str] = None
    promoter_id_card_number: Optional[str] = None
    promoter_passport_number: Optional[str] = None
    promoter_id_card_url: Optional[HttpUrl] = None
    promoter_passport_url: Optional[HttpUrl] = None

    first_party_name_en: str = Field(min_length=1)
    first_party_name_ar: Optional[str] = None
    first_party_crn: Optional[str] = None
    first_party_email: Optional[str] = None
    first_party_phone: Optional[str] = None

    second_party_name_en: str = Field(min_length=1)
    second_party_name_ar: Optional[str] = None
    second_party_crn: Optional[str] = None
    second_party_email: Optional[str] = None
    second_party_phone: Optional[str] = None

    job_title: str = Field(min_length=1)
    department: str = Field(min_length=1)
    work_location: str = Field(min_length=1)
    basic_salary: float = Field(ge=0)
    currency: Optional[str] = None
    contract_start_date: str
    contract_end_date: str
    special_terms: Optional[str] = None

    @field_validator("contract_start_date", "contract_end_date")
    @classmethod
    def check_iso_date(cls, value: str) -> str:
        if not value:
            raise ValueError("date is required")
        return _validate_iso_date(value)

    @field_validator("promoter_id_card_url", "promoter_passport_url")
    @classmethod
    def check_https(cls, value: Optional[HttpUrl]) -> Optional[HttpUrl]:
        if value is not None and value.scheme != "https":
            raise ValueError("image URLs must use https")
        return value


class ContractDocumentResponse(BaseModel):
    """Schema for a generated contract document"""

    success: bool = True
    contract_number: str
    backend: str
    document_id: Optional[str] = None
    document_url: Optional[str] = None
    pdf_url: Optional[str] = None
    generated_at: datetime
    processing_time_ms: int
    file_size: Optional[int] = None
