"""Credits module - metered consumption ledger."""
from core.credits.ledger import (
    CreditLedger,
    CreditOperationResult,
    CreditStats,
    INSUFFICIENT_CREDITS,
    NOT_AUTHENTICATED,
    NOT_AUTHORIZED,
    INVALID_AMOUNT,
    ORGANIZATION_NOT_FOUND,
    INVALID_CREDIT_TYPE,
    INVALID_TRANSACTION_TYPE,
    CREDIT_TYPES,
    GRANT_TRANSACTION_TYPES,
)

__all__ = [
    'CreditLedger',
    'CreditOperationResult',
    'CreditStats',
    'INSUFFICIENT_CREDITS',
    'NOT_AUTHENTICATED',
    'NOT_AUTHORIZED',
    'INVALID_AMOUNT',
    'ORGANIZATION_NOT_FOUND',
    'INVALID_CREDIT_TYPE',
    'INVALID_TRANSACTION_TYPE',
    'CREDIT_TYPES',
    'GRANT_TRANSACTION_TYPES',
]
