"""
Balance ledger.

Every row belongs to one account of a user: ``enterprise`` or ``individual``.
A user holding both profiles keeps two separate ledgers.
Enterprise balances change only through ``apply_enterprise_delta``, which
issues ``balance = balance + delta`` in SQL and appends a ``Transaction`` row
with the resulting balance in the same unit of work. Individuals carry no
balance column; their running balance is derived from their ledger rows.
"""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskmarket.errors import Conflict, NotFound, ValidationFailed
from taskmarket.models import Enterprise, LedgerAccount, Transaction, TransactionType

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Direction of each ledger event relative to the holder's balance.
CREDIT_TYPES = {TransactionType.recharge.value, TransactionType.unfreeze.value, TransactionType.income.value}
DEBIT_TYPES = {TransactionType.freeze.value, TransactionType.pay.value, TransactionType.withdraw.value}


def to_money(value: Decimal | int | str) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


async def apply_enterprise_delta(
    session: AsyncSession,
    enterprise: Enterprise,
    tx_type: TransactionType,
    amount: Decimal,
    related_id: int | None = None,
    description: str | None = None,
    require_funds: bool = False,
) -> Transaction:
    """Move ``amount`` in or out of the enterprise balance and log it. Does not commit."""
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationFailed("Amount must be positive")
    delta = amount if tx_type.value in CREDIT_TYPES else -amount

    stmt = (
        update(Enterprise)
        .where(Enterprise.id == enterprise.id)
        .values(balance=Enterprise.balance + delta)
        .execution_options(synchronize_session=False)
    )
    if require_funds:
        stmt = stmt.where(Enterprise.balance >= amount)
    res = await session.execute(stmt)
    if res.rowcount == 0:
        if require_funds:
            raise Conflict("Insufficient balance")
        raise NotFound("Enterprise profile not found")

    balance = await session.scalar(select(Enterprise.balance).where(Enterprise.id == enterprise.id))
    tx = Transaction(
        user_id=enterprise.user_id,
        type=tx_type.value,
        account=LedgerAccount.enterprise.value,
        amount=amount,
        balance=to_money(balance),
        related_id=related_id,
        description=description,
    )
    session.add(tx)
    await session.flush()
    logger.info(f"[ledger] enterprise {enterprise.id} {tx_type.value} {amount} -> balance {tx.balance}")
    return tx


async def individual_balance(session: AsyncSession, user_id: int) -> Decimal:
    signed = case(
        (Transaction.type.in_(sorted(CREDIT_TYPES)), Transaction.amount),
        else_=-Transaction.amount,
    )
    total = await session.scalar(
        select(func.coalesce(func.sum(signed), 0)).where(
            Transaction.user_id == user_id, Transaction.account == LedgerAccount.individual.value
        )
    )
    return to_money(total or 0)


async def individual_earnings(session: AsyncSession, user_id: int) -> Decimal:
    total = await session.scalar(
        select(func.coalesce(func.sum(Transaction.amount), 0)).where(
            Transaction.user_id == user_id,
            Transaction.account == LedgerAccount.individual.value,
            Transaction.type == TransactionType.income.value,
        )
    )
    return to_money(total or 0)


async def record_income(
    session: AsyncSession,
    user_id: int,
    amount: Decimal,
    related_id: int | None = None,
    description: str | None = None,
) -> Transaction:
    """Credit a worker. Does not commit."""
    amount = to_money(amount)
    balance = await individual_balance(session, user_id)
    tx = Transaction(
        user_id=user_id,
        type=TransactionType.income.value,
        account=LedgerAccount.individual.value,
        amount=amount,
        balance=balance + amount,
        related_id=related_id,
        description=description,
    )
    session.add(tx)
    await session.flush()
    logger.info(f"[ledger] user {user_id} income {amount} -> balance {tx.balance}")
    return tx


async def recharge(session: AsyncSession, enterprise: Enterprise, amount: Decimal) -> Transaction:
    try:
        tx = await apply_enterprise_delta(session, enterprise, TransactionType.recharge, amount, description="Recharge")
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    return tx


async def withdraw(session: AsyncSession, enterprise: Enterprise, amount: Decimal) -> Transaction:
    try:
        tx = await apply_enterprise_delta(
            session, enterprise, TransactionType.withdraw, amount, description="Withdraw", require_funds=True
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    return tx


async def list_transactions(
    session: AsyncSession, user_id: int, account: LedgerAccount, limit: int = 50
) -> list[Transaction]:
    res = await session.execute(
        select(Transaction)
        .where(Transaction.user_id == user_id, Transaction.account == account.value)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(limit)
    )
    return list(res.scalars().all())
