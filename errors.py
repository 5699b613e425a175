from typing import Optional


class ProcessingError(Exception):
    """Base class for a transaction record rejected by the engine."""

    code = "ProcessingError"

    def __init__(self, message: str, client_id: Optional[int] = None, tx_id: Optional[int] = None):
        super().__init__(message)
        self.client_id = client_id
        self.tx_id = tx_id


class AccountNotFoundError(ProcessingError):
    code = "AccountNotFound"

    def __init__(self, client_id: int):
        super().__init__(f"Account {client_id} not found", client_id=client_id)


class AccountLockedError(ProcessingError):
    code = "AccountLocked"

    def __init__(self, client_id: int):
        super().__init__(f"Account {client_id} is locked", client_id=client_id)


class InsufficientFundsError(ProcessingError):
    code = "InsufficientFunds"

    def __init__(self, client_id: int):
        super().__init__(f"Insufficient funds on account {client_id}", client_id=client_id)


class DuplicateTransactionError(ProcessingError):
    code = "DuplicateTx"

    def __init__(self, tx_id: int):
        super().__init__(f"Transaction {tx_id} already exists", tx_id=tx_id)


class TransactionAlreadyDisputedError(ProcessingError):
    code = "TxAlreadyDisputed"

    def __init__(self, tx_id: int):
        super().__init__(f"Transaction {tx_id} is already disputed", tx_id=tx_id)


class TransactionNotFoundError(ProcessingError):
    code = "TxNotFound"

    def __init__(self, tx_id: int):
        super().__init__(f"Transaction {tx_id} not found", tx_id=tx_id)


class TransactionNotDisputedError(ProcessingError):
    code = "TxNotDisputed"

    def __init__(self, tx_id: int):
        super().__init__(f"Transaction {tx_id} is not disputed", tx_id=tx_id)


class AmountNotSpecifiedError(ProcessingError):
    code = "AmountNotSpecified"

    def __init__(self, tx_id: int):
        super().__init__(f"Transaction {tx_id} has no amount", tx_id=tx_id)
