from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field

from services import sha256


class RoundState(BaseModel):
    """Seed pair and the last nonce consumed for it."""

    model_config = ConfigDict(frozen=True)

    session_id: str = Field(default_factory=lambda: uuid4().hex)
    server_seed: str = Field(min_length=1, repr=False)
    client_seed: str = Field(min_length=1)
    nonce: int = Field(default=0, ge=0)

    @property
    def server_seed_hash(self) -> str:
        return sha256.hexdigest(self.server_seed)

    def advanced(self) -> "RoundState":
        return self.model_copy(update={"nonce": self.nonce + 1})


class Outcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    rows: int = Field(ge=0)
    nonce: int = Field(ge=0)
    digest_hex: str = Field(min_length=64, max_length=64)
    path: List[int]
    slot_index: int = Field(ge=0)


class RevealedSeed(BaseModel):
    model_config = ConfigDict(frozen=True)

    server_seed: str
    server_seed_hash: str
    client_seed: str
    final_nonce: int


class Verification(BaseModel):
    digest_hex: str
    path: List[int]
    slot_index: int
    digest_matches: Optional[bool] = None
    slot_matches: Optional[bool] = None
    commitment_matches: Optional[bool] = None

    @computed_field
    @property
    def valid(self) -> bool:
        checks = (self.digest_matches, self.slot_matches, self.commitment_matches)
        return all(c is not False for c in checks)
