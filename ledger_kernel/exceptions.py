"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (request handlers, batch jobs) need to map each failure to a
distinct response. Every error therefore has:
  1. Its own class (catch by type, not by message)
  2. A static CODE attribute (machine-readable, API-safe)
  3. Structured attributes carrying the offending values

Example:
    try:
        ledger.post_transaction(entries, actor_id=actor)
    except ImbalancedTransactionError as e:
        return {"error": e.code, "debits": e.debits, "credits": e.credits}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerKernelError (base)
    |
    +-- PostingError
    |   +-- ImbalancedTransactionError
    |   +-- InsufficientEntriesError
    |   +-- InvalidEntryAmountError
    |
    +-- NotFoundError
    |   +-- AccountNotFoundError
    |   +-- TransactionNotFoundError
    |
    +-- ReversalError
    |   +-- AlreadyReversedError
    |
    +-- ReconciliationError
    |   +-- AlreadyProcessedError
    |   +-- MismatchError
    |
    +-- PaymentError
    |   +-- PaymentNotRefundableError
    |
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Posting         | IMBALANCED_TRANSACTION      | Debits != Credits
                | INSUFFICIENT_ENTRIES        | Fewer than two lines in a posting
                | INVALID_ENTRY_AMOUNT        | Line amount is zero or negative
----------------|-----------------------------|-----------------------------------------
Lookup          | NOT_FOUND                   | Bank line / customer / invoice / payment absent
                | ACCOUNT_NOT_FOUND           | Account code doesn't exist
                | TRANSACTION_NOT_FOUND       | Ledger transaction group doesn't exist
----------------|-----------------------------|-----------------------------------------
Reversal        | ALREADY_REVERSED            | Transaction group reversed twice
----------------|-----------------------------|-----------------------------------------
Reconciliation  | ALREADY_PROCESSED           | Bank line is not PENDING/UNMATCHED
                | INVOICE_CUSTOMER_MISMATCH   | Invoice belongs to another customer
----------------|-----------------------------|-----------------------------------------
Payment         | PAYMENT_NOT_REFUNDABLE      | Refund of a non-CONFIRMED payment
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | UPDATE/DELETE of a ledger line or log row
===============================================================================
"""


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Posting-related exceptions


class PostingError(LedgerKernelError):
    """Base exception for posting-related errors."""

    code: str = "POSTING_ERROR"


class ImbalancedTransactionError(PostingError):
    """Transaction debits do not equal credits. Nothing was written."""

    code: str = "IMBALANCED_TRANSACTION"

    def __init__(self, debits: str, credits: str):
        self.debits = debits
        self.credits = credits
        super().__init__(
            f"Transaction must balance: debits ({debits}) != credits ({credits})"
        )


class InsufficientEntriesError(PostingError):
    """Double entry needs at least one debit and one credit line."""

    code: str = "INSUFFICIENT_ENTRIES"

    def __init__(self, entry_count: int):
        self.entry_count = entry_count
        super().__init__(
            f"Double-entry requires at least 2 entries, got {entry_count}"
        )


class InvalidEntryAmountError(PostingError):
    """Ledger line amounts are always positive; direction carries the sign."""

    code: str = "INVALID_ENTRY_AMOUNT"

    def __init__(self, account_code: str, amount: str):
        self.account_code = account_code
        self.amount = amount
        super().__init__(
            f"Entry amount for account {account_code} must be positive, got {amount}"
        )


# Lookup exceptions


class NotFoundError(LedgerKernelError):
    """A referenced record does not exist."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class AccountNotFoundError(NotFoundError):
    """Account code was not found in the chart of accounts."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__("Account", account_code)


class TransactionNotFoundError(NotFoundError):
    """No ledger entries exist for the transaction group."""

    code: str = "TRANSACTION_NOT_FOUND"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__("Ledger transaction", transaction_id)


# Reversal exceptions


class ReversalError(LedgerKernelError):
    """Base exception for reversal errors."""

    code: str = "REVERSAL_ERROR"


class AlreadyReversedError(ReversalError):
    """Transaction group has already been reversed."""

    code: str = "ALREADY_REVERSED"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} has already been reversed")


# Reconciliation exceptions


class ReconciliationError(LedgerKernelError):
    """Base exception for bank reconciliation errors."""

    code: str = "RECONCILIATION_ERROR"


class AlreadyProcessedError(ReconciliationError):
    """Bank transaction is not in a state that allows matching."""

    code: str = "ALREADY_PROCESSED"

    def __init__(self, bank_transaction_id: str, status: str):
        self.bank_transaction_id = bank_transaction_id
        self.status = status
        super().__init__(
            f"Bank transaction {bank_transaction_id} has already been processed "
            f"(status={status})"
        )


class MismatchError(ReconciliationError):
    """Supplied invoice does not belong to the supplied customer."""

    code: str = "INVOICE_CUSTOMER_MISMATCH"

    def __init__(self, invoice_id: str, customer_id: str):
        self.invoice_id = invoice_id
        self.customer_id = customer_id
        super().__init__(
            f"Invoice {invoice_id} does not belong to customer {customer_id}"
        )


# Payment exceptions


class PaymentError(LedgerKernelError):
    """Base exception for payment errors."""

    code: str = "PAYMENT_ERROR"


class PaymentNotRefundableError(PaymentError):
    """Only confirmed payments can be refunded."""

    code: str = "PAYMENT_NOT_REFUNDABLE"

    def __init__(self, payment_id: str, status: str):
        self.payment_id = payment_id
        self.status = status
        super().__init__(
            f"Payment {payment_id} cannot be refunded in status {status}"
        )


# Immutability exceptions


class ImmutabilityViolationError(LedgerKernelError):
    """
    Attempted to modify or delete an immutable record.

    Ledger entries accept only the one-way reversal flag; reconciliation
    log rows accept nothing.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
