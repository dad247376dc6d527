import threading
from decimal import Decimal

import pytest

from dispatch import InMemoryLockManager
from orders.exceptions import InsufficientFunds, InvalidState, NotFound
from riders import (
    BankAccount,
    InMemoryRiderDirectory,
    InMemoryWithdrawalStore,
    InvalidAmount,
    Rider,
    TransactionType,
    WithdrawalDesk,
    WithdrawalStatus,
    credit,
    debit,
    ledger_balance,
)

from .factories import FakeClock


@pytest.fixture
def riders():
    clock = FakeClock()
    directory = InMemoryRiderDirectory([Rider.new("r1")], clock=clock)
    directory.add_bank_account("r1", BankAccount("acct-1", "Asha Rao", "00112233", ifsc_code="HDFC0001"))
    directory.credit_wallet("r1", Decimal("300"), reason="delivery_earning", order_id="o-1")
    return directory


@pytest.fixture
def desk(riders):
    return WithdrawalDesk(InMemoryWithdrawalStore(), riders, InMemoryLockManager(), clock=FakeClock())


def test_credit_and_debit_keep_balance_equal_to_ledger():
    rider = Rider.new("r")
    clock = FakeClock()
    credit(rider, Decimal("45.5"), now=clock(), reason="delivery_earning", order_id="o1")
    credit(rider, 30, now=clock(), reason="delivery_earning", order_id="o2")
    debit(rider, Decimal("20.25"), now=clock(), reason="withdrawal", reference="w1")

    assert rider.wallet_balance == Decimal("55.25")
    assert ledger_balance(rider.transactions) == rider.wallet_balance
    assert [t.type for t in rider.transactions] == [TransactionType.CREDIT, TransactionType.CREDIT, TransactionType.DEBIT]


def test_overdraft_leaves_wallet_untouched():
    rider = Rider.new("r")
    with pytest.raises(InsufficientFunds):
        debit(rider, Decimal("1"), now=FakeClock()())
    assert rider.transactions == []
    assert rider.wallet_balance == Decimal("0.00")


@pytest.mark.parametrize("amount", [0, -5, "ten", Decimal("NaN"), True])
def test_wallet_amounts_must_be_positive_numbers(amount):
    with pytest.raises(InvalidAmount):
        credit(Rider.new("r"), amount, now=FakeClock()())


def test_request_does_not_touch_wallet(desk, riders):
    request = desk.request_withdrawal("r1", Decimal("100"), "acct-1")

    assert request.status == WithdrawalStatus.REQUESTED
    assert request.bank_detail["account_number"] == "00112233"
    assert riders.get("r1").wallet_balance == Decimal("300.00")


def test_request_checks_balance_and_account(desk):
    with pytest.raises(InsufficientFunds):
        desk.request_withdrawal("r1", Decimal("300.01"), "acct-1")
    with pytest.raises(NotFound):
        desk.request_withdrawal("r1", Decimal("10"), "acct-unknown")
    with pytest.raises(NotFound):
        desk.request_withdrawal("nobody", Decimal("10"), "acct-1")


def test_approve_debits_once(desk, riders):
    request = desk.request_withdrawal("r1", Decimal("120"), "acct-1")

    approved = desk.approve(request.id)
    assert approved.status == WithdrawalStatus.APPROVED

    with pytest.raises(InvalidState):
        desk.approve(request.id)

    rider = riders.get("r1")
    assert rider.wallet_balance == Decimal("180.00")
    debits = [t for t in rider.transactions if t.type == TransactionType.DEBIT]
    assert len(debits) == 1
    assert debits[0].reference == request.id


def test_concurrent_approvals_debit_once(desk, riders):
    request = desk.request_withdrawal("r1", Decimal("50"), "acct-1")
    barrier = threading.Barrier(4)
    outcomes = []

    def approve():
        barrier.wait()
        try:
            outcomes.append(desk.approve(request.id).status)
        except InvalidState:
            outcomes.append("refused")

    threads = [threading.Thread(target=approve) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count(WithdrawalStatus.APPROVED) == 1
    assert riders.get("r1").wallet_balance == Decimal("250.00")


def test_approval_fails_when_balance_dropped(desk, riders):
    first = desk.request_withdrawal("r1", Decimal("200"), "acct-1")
    second = desk.request_withdrawal("r1", Decimal("200"), "acct-1")
    desk.approve(first.id)

    with pytest.raises(InsufficientFunds):
        desk.approve(second.id)
    assert desk.store.get(second.id).status == WithdrawalStatus.REQUESTED
    assert riders.get("r1").wallet_balance == Decimal("100.00")


def test_rejected_request_is_terminal(desk, riders):
    request = desk.request_withdrawal("r1", Decimal("10"), "acct-1")
    assert desk.reject(request.id).status == WithdrawalStatus.REJECTED

    with pytest.raises(InvalidState):
        desk.approve(request.id)
    assert riders.get("r1").wallet_balance == Decimal("300.00")


def test_unknown_request(desk):
    with pytest.raises(NotFound):
        desk.approve("missing")
