"""
Contract models for AI-generated legal agreements.
"""

from datetime import datetime
from enum import Enum

from pydantic import EmailStr, Field, field_validator, model_validator

from contract_studio.models.document import CamelModel, utcnow


class ContractType(str, Enum):
    """Catalog of agreement types, most requested first."""

    NDA = "Non-Disclosure Agreement (NDA)"
    EMPLOYMENT = "Employment Agreement"
    SERVICE = "Service Agreement"
    CONSULTING = "Consulting Agreement"
    SALES = "Sales Contract"
    LEASE = "Lease Agreement"
    TERM_SHEET = "Term Sheet"
    SAFE_NOTE = "SAFE Note Agreement"
    CONVERTIBLE_NOTE = "Convertible Note Agreement"
    EQUITY_VESTING = "Equity Vesting Agreement"
    PARTNERSHIP = "Partnership Agreement"
    DISTRIBUTION = "Distribution Agreement"
    LICENSING = "Licensing Agreement"
    SOFTWARE_LICENSE = "Software License Agreement"
    FREELANCER = "Freelancer Contract"
    IP_ASSIGNMENT = "Intellectual Property Assignment"
    CO_FOUNDER = "Co-Founder Agreement"
    STOCK_OPTION = "Stock Option Agreement"
    INVESTMENT = "Investment Agreement"
    TERMS_OF_SERVICE = "Terms of Service"
    PRIVACY_POLICY = "Privacy Policy"
    DATA_PROCESSING = "Data Processing Agreement"
    SAAS = "SAAS Agreement"


JURISDICTIONS: tuple[str, ...] = (
    "Alabama", "Alaska", "Arizona", "Arkansas", "California", "Colorado",
    "Connecticut", "Delaware", "Florida", "Georgia", "Hawaii", "Idaho",
    "Illinois", "Indiana", "Iowa", "Kansas", "Kentucky", "Louisiana", "Maine",
    "Maryland", "Massachusetts", "Michigan", "Minnesota", "Mississippi",
    "Missouri", "Montana", "Nebraska", "Nevada", "New Hampshire", "New Jersey",
    "New Mexico", "New York", "North Carolina", "North Dakota", "Ohio",
    "Oklahoma", "Oregon", "Pennsylvania", "Rhode Island", "South Carolina",
    "South Dakota", "Tennessee", "Texas", "Utah", "Vermont", "Virginia",
    "Washington", "West Virginia", "Wisconsin", "Wyoming",
)


class Intensity(str, Enum):
    """How protective generated language is toward the first party."""

    LIGHT = "Light"
    MODERATE = "Moderate"
    AGGRESSIVE = "Aggressive"


class ContractStatus(str, Enum):
    """Generation status of a contract."""

    DRAFT = "draft"
    GENERATING = "generating"
    GENERATED = "generated"
    FAILED = "failed"
    SAVED = "saved"


class Party(CamelModel):
    """A contracting party."""

    name: str = Field(..., min_length=2)
    address: str | None = None
    email: EmailStr | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters")
        return v


def _check_jurisdiction(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    value = value.strip()
    if value not in JURISDICTIONS:
        raise ValueError(f"Unknown jurisdiction: {value}")
    return value


class GenerationParams(CamelModel):
    """Validated inputs to contract generation."""

    contract_type: ContractType
    first_party: Party
    second_party: Party
    jurisdiction: str | None = None
    description: str | None = None
    key_terms: str | None = None
    intensity: Intensity = Intensity.MODERATE
    ai_model: str = "openai"
    # Set by the address-aware form
    require_addresses: bool = False

    @field_validator("jurisdiction")
    @classmethod
    def validate_jurisdiction(cls, v: str | None) -> str | None:
        return _check_jurisdiction(v)

    @field_validator("ai_model")
    @classmethod
    def normalize_ai_model(cls, v: str) -> str:
        return v.strip().lower()

    @model_validator(mode="after")
    def check_addresses(self) -> "GenerationParams":
        if self.require_addresses:
            for label, party in (("firstParty", self.first_party), ("secondParty", self.second_party)):
                if not party.address or not party.address.strip():
                    raise ValueError(f"{label} address is required")
        return self


class Contract(CamelModel):
    """
    A contract record owned by a user.

    contract_content stays None until generation succeeds.
    """

    id: str
    owner_id: str
    title: str = Field(..., min_length=2)
    contract_type: ContractType
    first_party: Party
    second_party: Party
    jurisdiction: str | None = None
    description: str | None = None
    key_terms: str | None = None
    intensity: Intensity = Intensity.MODERATE
    ai_model: str = "openai"

    status: ContractStatus = ContractStatus.DRAFT
    contract_content: str | None = None
    error: str | None = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("jurisdiction")
    @classmethod
    def validate_jurisdiction(cls, v: str | None) -> str | None:
        return _check_jurisdiction(v)

    def to_params(self) -> GenerationParams:
        """Build generation inputs from the stored record."""
        return GenerationParams(
            contract_type=self.contract_type,
            first_party=self.first_party,
            second_party=self.second_party,
            jurisdiction=self.jurisdiction,
            description=self.description,
            key_terms=self.key_terms,
            intensity=self.intensity,
            ai_model=self.ai_model,
        )
