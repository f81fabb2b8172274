"""
Allocation and settlement engine.

Every function here is a pure recomputation from the roster, the expense
log and the allocation policy handed in by the caller. Nothing is cached
and nothing the caller owns is mutated.
"""
import math
from dataclasses import dataclass
from typing import List, Dict

from exceptions import (
    DegenerateAllocationError,
    InvalidExpenseError,
    SettlementInconsistencyError,
    UnknownParticipantError
)
from models import (
    AllocationPolicy,
    Balance,
    Expense,
    ExpenseShare,
    Participant,
    Settlement,
    ShareBreakdown
)

CHILD_WEIGHT = 0.5
SETTLEMENT_TOLERANCE = 0.01

@dataclass
class TripResult:
    shares: Dict[int, ShareBreakdown]
    balances: Dict[int, Balance]
    settlements: List[Settlement]

def participant_weight(participant: Participant, policy: AllocationPolicy) -> float:
    """Relative cost-sharing weight of a participant under a policy"""
    if not participant.is_family:
        return 1.0

    if policy == AllocationPolicy.PER_PERSON:
        family = participant.family
        return family.adults + family.children * CHILD_WEIGHT
    if policy == AllocationPolicy.CUSTOM_RATIO:
        return participant.custom_ratio
    return 1.0

def _resolve(roster: Dict[int, Participant], participant_id, expense_id) -> Participant:
    participant = roster.get(participant_id)
    if participant is None:
        raise UnknownParticipantError(participant_id, expense_id)
    return participant

def _check_amount(expense: Expense):
    amount = expense.amount
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise InvalidExpenseError(expense.id, amount)
    if not math.isfinite(amount) or amount <= 0:
        raise InvalidExpenseError(expense.id, amount)

def allocate(expenses: List[Expense], participants: List[Participant],
             policy: AllocationPolicy) -> Dict[int, ShareBreakdown]:
    """
    Split every expense across its participants in proportion to their weights.

    Returns participant id -> ShareBreakdown, in roster order. Expenses that
    split across everyone are resolved against the roster passed in now, so
    participants added after an expense was recorded are included.

    Shares are not rounded and no remainder is redistributed, so the shares of
    one expense sum to its amount only up to float precision.
    """
    roster = {p.id: p for p in participants}
    roster_ids = list(roster)
    shares = {pid: ShareBreakdown() for pid in roster_ids}

    for expense in expenses:
        _check_amount(expense)

        members = [
            _resolve(roster, pid, expense.id)
            for pid in expense.split_between.resolve(roster_ids)
        ]
        weights = [participant_weight(p, policy) for p in members]
        total_weight = sum(weights)
        if not members or total_weight <= 0:
            raise DegenerateAllocationError(expense.id)

        _resolve(roster, expense.paid_by, expense.id)

        for member, weight in zip(members, weights):
            share = expense.amount * weight / total_weight
            breakdown = shares[member.id]
            breakdown.total += share
            breakdown.expenses.append(ExpenseShare(expense.id, share))

    return shares

def net_balances(participants: List[Participant], expenses: List[Expense],
                 shares: Dict[int, ShareBreakdown]) -> Dict[int, Balance]:
    """paid, owes and net (paid - owes) for every participant on the roster"""
    balances = {}
    for participant in participants:
        breakdown = shares.get(participant.id)
        balances[participant.id] = Balance(owes=breakdown.total if breakdown else 0.0)

    for expense in expenses:
        if expense.paid_by not in balances:
            raise UnknownParticipantError(expense.paid_by, expense.id)
        balances[expense.paid_by].paid += expense.amount

    for balance in balances.values():
        balance.net = balance.paid - balance.owes

    return balances

def settle(balances: Dict[int, Balance], tolerance: float = SETTLEMENT_TOLERANCE) -> List[Settlement]:
    """
    Plan debtor -> creditor payments that bring every net balance to zero.

    Greedy matching: the largest debtor pays the largest creditor as much as
    either can take, then whoever is settled drops out. This yields at most
    len(balances) - 1 payments but is not guaranteed to be the global minimum.
    Ties keep roster order.
    """
    working = {pid: balance.net for pid, balance in balances.items()}

    # Create lists of debtors (owe money) and creditors (receive money)
    debtors = [pid for pid, net in working.items() if net < -tolerance]
    creditors = [pid for pid, net in working.items() if net > tolerance]

    debtors.sort(key=lambda pid: working[pid])
    creditors.sort(key=lambda pid: working[pid], reverse=True)

    settlements = []
    i, j = 0, 0

    while i < len(debtors) and j < len(creditors):
        debtor = debtors[i]
        creditor = creditors[j]

        amount = min(abs(working[debtor]), working[creditor])
        if amount > tolerance:
            settlements.append(Settlement(from_id=debtor, to_id=creditor, amount=amount))

        working[debtor] += amount
        working[creditor] -= amount

        # Both sides can settle on the same step
        if abs(working[debtor]) < tolerance:
            i += 1
        if abs(working[creditor]) < tolerance:
            j += 1

    leftover = [working[pid] for pid in debtors[i:] + creditors[j:]]
    residual = sum(abs(net) for net in leftover)
    if residual > tolerance * len(balances):
        raise SettlementInconsistencyError(
            f"Balances do not sum to zero: {residual:.2f} left unsettled"
        )

    return settlements

def compute_trip(participants: List[Participant], expenses: List[Expense],
                 policy: AllocationPolicy) -> TripResult:
    shares = allocate(expenses, participants, policy)
    balances = net_balances(participants, expenses, shares)
    return TripResult(shares=shares, balances=balances, settlements=settle(balances))
