from models import (
    ALL_PARTICIPANTS,
    AllParticipants,
    Expense,
    ExpenseCategory,
    FamilyComposition,
    Participant,
    ParticipantKind,
    Settlement,
    Subset,
    selection_from_ids
)


def test_all_participants_is_a_singleton():
    assert AllParticipants() is ALL_PARTICIPANTS
    assert ALL_PARTICIPANTS.resolve([3, 1, 2]) == [3, 1, 2]
    assert ALL_PARTICIPANTS.to_list() == []


def test_subset_drops_duplicates_and_keeps_order():
    subset = Subset((2, 1, 2, 3, 1))

    assert subset.ids == (2, 1, 3)
    assert subset.resolve([1, 2, 3, 4]) == [2, 1, 3]


def test_empty_id_list_means_everyone():
    assert selection_from_ids([]) is ALL_PARTICIPANTS
    assert selection_from_ids(None) is ALL_PARTICIPANTS
    assert selection_from_ids([4, 5]) == Subset((4, 5))


def test_family_participant_from_dict():
    participant = Participant.from_dict({
        'id': 7,
        'name': '  The Smiths ',
        'type': 'family',
        'familyMembers': {'adults': 2, 'children': 3},
        'customRatio': 1.5
    })

    assert participant.name == 'The Smiths'
    assert participant.kind == ParticipantKind.FAMILY
    assert participant.family == FamilyComposition(adults=2, children=3)
    assert participant.custom_ratio == 1.5
    assert participant.phone_number is None


def test_individual_ignores_family_members():
    participant = Participant.from_dict({
        'name': 'Ann',
        'familyMembers': {'adults': 4, 'children': 0}
    })

    assert participant.kind == ParticipantKind.INDIVIDUAL
    assert participant.family is None
    assert participant.to_dict()['familyMembers'] is None


def test_expense_dict_uses_empty_list_for_everyone():
    expense = Expense.from_dict({
        'id': 1,
        'amount': '42.5',
        'category': 'drinks',
        'paidBy': 3,
        'participants': []
    })

    assert expense.amount == 42.5
    assert expense.category == ExpenseCategory.DRINKS
    assert expense.split_between is ALL_PARTICIPANTS
    assert expense.to_dict()['participants'] == []


def test_category_labels():
    assert ExpenseCategory.CAR.label == 'Car Rental/Taxi'
    assert ExpenseCategory.ACCOMMODATION.label == 'Accommodation'


def test_settlement_dict_rounds_amount():
    assert Settlement(from_id=1, to_id=2, amount=33.3333).to_dict() == {
        'from': 1,
        'to': 2,
        'amount': 33.33
    }
