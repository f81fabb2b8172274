class ExpenseSplitError(Exception):
    """Base class for errors raised while splitting trip expenses"""

class DegenerateAllocationError(ExpenseSplitError):
    """An expense has nobody (or zero total weight) to be split across"""

    def __init__(self, expense_id):
        self.expense_id = expense_id
        super().__init__(f"Expense {expense_id} has no participants to split across")

class UnknownParticipantError(ExpenseSplitError):
    """An expense references a participant id that is not on the roster"""

    def __init__(self, participant_id, expense_id=None):
        self.participant_id = participant_id
        self.expense_id = expense_id
        message = f"Unknown participant {participant_id!r}"
        if expense_id is not None:
            message += f" referenced by expense {expense_id}"
        super().__init__(message)

class InvalidExpenseError(ExpenseSplitError):
    def __init__(self, expense_id, amount):
        self.expense_id = expense_id
        self.amount = amount
        super().__init__(f"Expense {expense_id} has invalid amount {amount!r}")

class SettlementInconsistencyError(ExpenseSplitError):
    """Balances did not sum to zero, so the settlement plan cannot close"""
