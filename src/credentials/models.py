"""
Credential guessing data structures
"""

from typing import Dict, Optional, Tuple
from dataclasses import dataclass

SOURCE_COLLABORATOR = "collaborator"
SOURCE_FALLBACK = "fallback"
SOURCE_SUPPLIED = "supplied"


@dataclass(frozen=True)
class CredentialGuess:
    """A ranked username/password pair proposed for trial login"""
    username: str
    password: str
    rationale: str
    rank: int

    @property
    def masked_password(self) -> str:
        return "****" if self.password else "(blank)"

    def as_dict(self) -> Dict:
        return {
            "username": self.username,
            "password": self.password,
            "reason": self.rationale,
            "rank": self.rank
        }


@dataclass(frozen=True)
class CredentialTestResult:
    """Outcome of one authenticated probe"""
    guess: CredentialGuess
    succeeded: bool
    evidence: str
    elapsed: float
    http_status: Optional[int] = None


@dataclass(frozen=True)
class SmartLoginResult:
    """Credential search for one address, kept for audit and replay"""
    address: str
    guesses: Tuple[CredentialGuess, ...]
    attempts: Tuple[CredentialTestResult, ...]
    suggestion_source: str
    duration_seconds: float
    brand: Optional[str] = None
    working_guess: Optional[CredentialGuess] = None
    ai_cost: Optional[float] = None
    cancelled: bool = False

    def __post_init__(self):
        if self.working_guess is not None and self.working_guess not in self.guesses:
            raise ValueError("working_guess must come from this run's guess list")

    @property
    def succeeded(self) -> bool:
        return self.working_guess is not None

    @property
    def tried_count(self) -> int:
        return len(self.attempts)

    @property
    def working_credentials(self) -> Optional[Dict[str, str]]:
        if self.working_guess is None:
            return None
        return {"username": self.working_guess.username, "password": self.working_guess.password}

    def to_dict(self) -> Dict:
        return {
            "ipAddress": self.address,
            "brand": self.brand,
            "workingCredentials": self.working_credentials,
            "rationale": self.working_guess.rationale if self.working_guess else None,
            "suggestedCredentials": [g.as_dict() for g in self.guesses],
            "triedCount": self.tried_count,
            "attempts": [
                {
                    "username": a.guess.username,
                    "rank": a.guess.rank,
                    "succeeded": a.succeeded,
                    "evidence": a.evidence,
                    "httpStatus": a.http_status
                }
                for a in self.attempts
            ],
            "suggestionSource": self.suggestion_source
        }


@dataclass(frozen=True)
class CredentialAnalysis:
    """Landing page analysis: the ranked guesses a smart login would try"""
    address: str
    guesses: Tuple[CredentialGuess, ...]
    suggestion_source: str
    brand: Optional[str] = None
    confidence: Optional[float] = None
    malformed_reason: Optional[str] = None
    ai_cost: Optional[float] = None

    def to_dict(self) -> Dict:
        return {
            "ipAddress": self.address,
            "brand": self.brand,
            "confidence": self.confidence,
            "suggestedCredentials": [g.as_dict() for g in self.guesses],
            "suggestionSource": self.suggestion_source
        }
