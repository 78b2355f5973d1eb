"""Ledger 타입 테스트"""

from decimal import Decimal

import pytest

from core.ledger.types import (
    OPENING_BALANCE_NOTE,
    POSITIVE_TRANSACTION_TYPES,
    AccountType,
    TransactionType,
    signed_amount,
)


class TestAccountType:
    """AccountType Enum 테스트"""

    def test_account_types(self) -> None:
        assert [t.value for t in AccountType] == [
            "Cash",
            "Savings",
            "Investment",
            "Retirement",
            "Crypto",
            "Debt",
        ]

    def test_lookup_by_value(self) -> None:
        """문자열로 조회 (대소문자 구분)"""
        assert AccountType("Debt") is AccountType.DEBT
        with pytest.raises(ValueError):
            AccountType("debt")


class TestTransactionType:
    """TransactionType Enum 테스트"""

    def test_transaction_types(self) -> None:
        assert {t.value for t in TransactionType} == {
            "deposit",
            "withdrawal",
            "interest",
            "expense",
            "transfer",
            "adjustment",
        }

    def test_str_enum(self) -> None:
        assert TransactionType.DEPOSIT == "deposit"

    def test_positive_types(self) -> None:
        assert POSITIVE_TRANSACTION_TYPES == {
            TransactionType.DEPOSIT,
            TransactionType.INTEREST,
        }


class TestSignedAmount:
    """signed_amount 부호 규칙 테스트"""

    @pytest.mark.parametrize("tx_type", [TransactionType.DEPOSIT, TransactionType.INTEREST])
    @pytest.mark.parametrize("amount", [Decimal("25.00"), Decimal("-25.00")])
    def test_positive_types(self, tx_type: TransactionType, amount: Decimal) -> None:
        """deposit / interest → +|amount|"""
        assert signed_amount(tx_type, amount) == Decimal("25.00")

    @pytest.mark.parametrize(
        "tx_type",
        [
            TransactionType.WITHDRAWAL,
            TransactionType.EXPENSE,
            TransactionType.TRANSFER,
            TransactionType.ADJUSTMENT,
        ],
    )
    @pytest.mark.parametrize("amount", [Decimal("25.00"), Decimal("-25.00")])
    def test_negative_types(self, tx_type: TransactionType, amount: Decimal) -> None:
        """그 외 → -|amount|"""
        assert signed_amount(tx_type, amount) == Decimal("-25.00")

    def test_zero(self) -> None:
        assert signed_amount(TransactionType.WITHDRAWAL, Decimal("0.00")) == 0


def test_opening_balance_note() -> None:
    assert OPENING_BALANCE_NOTE == "Opening Balance"
