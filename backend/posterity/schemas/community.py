"""Community Schemas - Pydantic models with field-level validation for API boundaries.

Invariants:
    - Addresses are 0x + 40 hex chars, normalized to lowercase
    - Hashes (proof roots, proof elements) are 0x + 64 hex chars
    - Generation fields are u32; a zero decay rate passes through so the engine
      reports INVALID_DECAY_RATE
    - Economic constants are positive decimals, converted to wad by the route

Design Decisions:
    - field_validator for side-effect-free transforms (lowercase) keeps models pure
    - Wad values leave the API as decimal strings: they overflow JSON numbers
"""

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from posterity.core.domain_types import U32_MAX, normalize_address


ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"
HASH_PATTERN = r"^0x[0-9a-fA-F]{64}$"


class _AddressNormalizing(BaseModel):
    """Lowercases every address-shaped string field."""

    @field_validator("*", mode="after")
    @classmethod
    def lowercase_addresses(cls, v):
        if isinstance(v, str) and v.startswith("0x") and len(v) == 42:
            return normalize_address(v)
        return v


# --- Community --------------------------------------------------------

class CommunityCreate(_AddressNormalizing):
    """Instantiation parameters for a new community."""
    name: str = Field(min_length=1, max_length=100)
    symbol: str = Field(min_length=1, max_length=20)
    owner: str = Field(pattern=ADDRESS_PATTERN)
    initial_price: Decimal = Field(gt=0)
    decay_constant: Decimal = Field(gt=0)
    emission_rate: Decimal = Field(gt=0)
    capacity: int = Field(ge=0, le=U32_MAX)
    decay_rate: int = Field(ge=0, le=U32_MAX)
    base_loss_rate: int = Field(0, ge=0, le=U32_MAX)
    proof_root: str = Field(pattern=HASH_PATTERN)

    @field_validator("name", "symbol")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty or whitespace")
        return v


class CommunityResponse(BaseModel):
    id: UUID
    name: str
    symbol: str
    owner: str
    current_epoch: int
    proof_root: str
    total_supply: int
    initial_price: str
    decay_constant: str
    emission_rate: str
    latest_birth: str


# --- Generations ------------------------------------------------------

class GenerationCreate(BaseModel):
    epoch: int = Field(ge=0, le=U32_MAX)
    capacity: int = Field(ge=0, le=U32_MAX)
    decay_rate: int = Field(ge=0, le=U32_MAX)
    base_loss_rate: int = Field(0, ge=0, le=U32_MAX)
    proof_root: str = Field(pattern=HASH_PATTERN)


class GenerationResponse(BaseModel):
    epoch: int
    capacity: int
    decay_rate: int
    base_loss_rate: int
    proof_root: str


# --- Ledger operations ------------------------------------------------

class ClaimRequest(_AddressNormalizing):
    address: str = Field(pattern=ADDRESS_PATTERN)
    proof: list[str] = Field(default_factory=list, max_length=64)

    @field_validator("proof")
    @classmethod
    def check_proof_elements(cls, v: list[str]) -> list[str]:
        for element in v:
            if len(element) != 66 or not element.startswith("0x"):
                raise ValueError("proof elements must be 0x-prefixed 32-byte hashes")
        return v


class ClaimResponse(BaseModel):
    address: str
    endowment: int


class TransferRequest(_AddressNormalizing):
    to: str = Field(pattern=ADDRESS_PATTERN)
    amount: int = Field(ge=0)


class DelegatedTransferRequest(_AddressNormalizing):
    owner: str = Field(pattern=ADDRESS_PATTERN)
    to: str = Field(pattern=ADDRESS_PATTERN)
    amount: int = Field(ge=0)


class ApprovalRequest(_AddressNormalizing):
    spender: str = Field(pattern=ADDRESS_PATTERN)
    amount: int = Field(ge=0)


class BurnRequest(BaseModel):
    amount: int = Field(ge=0)


class BurnResponse(BaseModel):
    holder: str
    amount: int
    balance: int
    state: str


class ApprovalResponse(BaseModel):
    owner: str
    spender: str
    amount: int


class TransferResponse(BaseModel):
    sender: str
    recipient: str
    amount: int
    decay: int
    cost: int
    endowment: int
    admission: bool
    sender_state: str
    recipient_state: str


# --- Reads ------------------------------------------------------------

class MemberResponse(BaseModel):
    epoch: int
    address: str
    state: str
    last_settled: int
    balance: int
    decay: int


class DecayResponse(BaseModel):
    address: str
    decay: int


class ErosionResponse(BaseModel):
    amount: int
    erosion: int
