"""
Data schemas for expense account resolution
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DecisionType(str, Enum):
    """Outcome of resolving a transaction's counterparty"""
    EXISTING = "existing"     # Reuse an account already in the ledger
    CREATE = "create"         # Create a new expense account


class AccountSource(str, Enum):
    """Which stage produced the decision"""
    AUTOCOMPLETE = "autocomplete"                     # Token-overlap match on search results
    AUTOCOMPLETE_FALLBACK = "autocomplete-fallback"   # First search result, low confidence
    AI = "ai"                                         # AI picked one of the candidates
    AI_NEW = "ai-new"                                 # AI proposed a new account


class Transaction(BaseModel):
    """Transaction text as received from the ledger. Description is checked by the matcher."""
    description: Optional[str] = None
    destination_name: Optional[str] = None


class NormalizedText(BaseModel):
    """Canonical token form of a free-text field"""
    model_config = ConfigDict(frozen=True)

    normalized_text: str = ""
    tokens: List[str] = Field(default_factory=list)


class AccountCandidate(BaseModel):
    """Expense account returned by the ledger's autocomplete search"""
    id: str
    name: str
    description: str = ""


class ResolvedAccount(BaseModel):
    """Account half of a decision. id is None until a 'create' decision is applied."""
    id: Optional[str] = None
    name: str
    description: str = ""
    source: AccountSource


class AccountDecision(BaseModel):
    """
    Result of matching one transaction.

    'existing' decisions always carry the ledger account id;
    'create' decisions carry the proposed name and description.
    """
    decision: DecisionType
    account: ResolvedAccount

    class Config:
        json_schema_extra = {
            "example": {
                "decision": "existing",
                "account": {
                    "id": "9",
                    "name": "Starbucks Coffee",
                    "description": "",
                    "source": "autocomplete"
                }
            }
        }

    @property
    def is_existing(self) -> bool:
        return self.decision == DecisionType.EXISTING
