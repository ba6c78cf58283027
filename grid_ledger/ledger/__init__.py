"""
Grid Ledger - Reference Ledger Module
"""
from .contract import GridDataContract, ContractRecord
from .chain import LocalChain, Wallet, PendingTransaction, Receipt, TransactionRequest

__all__ = [
    'GridDataContract', 'ContractRecord',
    'LocalChain', 'Wallet', 'PendingTransaction', 'Receipt', 'TransactionRequest',
]
