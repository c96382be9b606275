from .aiml import AIMLValidator
from .backend import BackendValidator
from .base import ValidationContext, Validator, governance_section
from .cloud import CloudValidator
from .data import DataValidator
from .devops import DevOpsValidator
from .frontend import FrontendValidator
from .mobile import MobileValidator
from .security import SecurityValidator

# Ordered by domain name; `readiness validate --all` runs them in this order
VALIDATOR_REGISTRY: dict[str, type[Validator]] = {
    "aiml": AIMLValidator,
    "backend": BackendValidator,
    "cloud": CloudValidator,
    "data": DataValidator,
    "devops": DevOpsValidator,
    "frontend": FrontendValidator,
    "mobile": MobileValidator,
    "security": SecurityValidator,
}


def create_validator(name: str) -> Validator:
    try:
        return VALIDATOR_REGISTRY[name]()
    except KeyError:
        raise ValueError(f"Unknown validator: {name}") from None


__all__ = [
    "AIMLValidator",
    "BackendValidator",
    "CloudValidator",
    "create_validator",
    "DataValidator",
    "DevOpsValidator",
    "FrontendValidator",
    "governance_section",
    "MobileValidator",
    "SecurityValidator",
    "ValidationContext",
    "Validator",
    "VALIDATOR_REGISTRY",
]
