"""
Balance -- normal-side sign conventions.

Responsibility:
    Pure functions that turn (account type, transaction type, amount) into
    the signed contribution to an account balance.

Invariants enforced:
    ASSET and EXPENSE are debit-normal: a DEBIT adds, a CREDIT subtracts.
    LIABILITY, EQUITY and INCOME are credit-normal: a CREDIT adds, a DEBIT
    subtracts.  For every balanced journal, the debit-normal contributions
    minus the credit-normal contributions sum to zero.
"""

from decimal import Decimal
from enum import Enum

from ledger_kernel.models.account import AccountType
from ledger_kernel.models.journal import TransactionType


class NormalBalance(str, Enum):
    """Side on which an account's balance grows."""

    DEBIT = "debit"
    CREDIT = "credit"


_NORMAL_BALANCE: dict[AccountType, NormalBalance] = {
    AccountType.ASSET: NormalBalance.DEBIT,
    AccountType.EXPENSE: NormalBalance.DEBIT,
    AccountType.LIABILITY: NormalBalance.CREDIT,
    AccountType.EQUITY: NormalBalance.CREDIT,
    AccountType.INCOME: NormalBalance.CREDIT,
}


def normal_balance(account_type: AccountType | str) -> NormalBalance:
    return _NORMAL_BALANCE[AccountType(account_type)]


def is_debit_normal(account_type: AccountType | str) -> bool:
    return normal_balance(account_type) is NormalBalance.DEBIT


def signed_amount(
    account_type: AccountType | str,
    transaction_type: TransactionType | str,
    amount: Decimal,
) -> Decimal:
    """Contribution of one transaction to its account's balance."""
    grows_on = normal_balance(account_type)
    if TransactionType(transaction_type).value == grows_on.value:
        return amount
    return -amount


def net_balance(
    account_type: AccountType | str,
    debit_total: Decimal,
    credit_total: Decimal,
) -> Decimal:
    """Balance on the account's normal side from side totals."""
    if is_debit_normal(account_type):
        return debit_total - credit_total
    return credit_total - debit_total
