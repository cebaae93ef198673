"""
Checksum utility functions
"""

import hashlib
import json

from app.schemas.contract import ContractFacts

# Fields that identify a contract for analysis purposes. Changing anything
# else on the record must not invalidate a cached analysis.
HASHED_CONTRACT_FIELDS = (
    "contract_id",
    "title",
    "buyer_name",
    "winner_name",
    "contract_value",
    "estimated_value",
    "num_bidders",
)


def calculate_checksum(text: str) -> str:
    """
    Calculate SHA256 checksum of text.

    Args:
        text: Text to hash

    Returns:
        Hexadecimal SHA256 hash
    """
    return hashlib.sha256(text.encode('utf-8')).hexdigest()


def canonical_contract_json(facts: ContractFacts) -> str:
    """
    Canonical serialization of the hashed contract fields.

    Keys are sorted and numbers normalized to float so the output does not
    depend on how the record was built.
    """
    data = {}
    for field in HASHED_CONTRACT_FIELDS:
        value = getattr(facts, field)
        if field in ("contract_value", "estimated_value") and value is not None:
            value = float(value)
        data[field] = value
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def calculate_contract_hash(facts: ContractFacts) -> str:
    """
    Content address of a contract for the analysis cache.

    Args:
        facts: Contract record

    Returns:
        Hexadecimal SHA256 hash (64 characters)
    """
    return calculate_checksum(canonical_contract_json(facts))
