import pytest

from database import Database
from models import (
    ALL_PARTICIPANTS,
    AllocationPolicy,
    Expense,
    ExpenseCategory,
    FamilyComposition,
    Participant,
    ParticipantKind,
    Subset
)


@pytest.fixture
def db(tmp_path):
    return Database(str(tmp_path / 'trip.db'))


def add_family(db, name='The Smiths', ratio=2.0):
    return db.add_participant(Participant(
        id=None,
        name=name,
        kind=ParticipantKind.FAMILY,
        family=FamilyComposition(adults=2, children=1),
        custom_ratio=ratio
    ))


def test_participants_round_trip_in_join_order(db):
    ann = db.add_participant(Participant(id=None, name='Ann', phone_number='+15551234567'))
    smiths = add_family(db)

    roster = db.get_participants()

    assert [p.id for p in roster] == [ann, smiths]
    assert roster[0].kind == ParticipantKind.INDIVIDUAL
    assert roster[0].family is None
    assert roster[0].phone_number == '+15551234567'
    assert roster[1].family == FamilyComposition(adults=2, children=1)
    assert roster[1].custom_ratio == 2.0


def test_expenses_keep_selection(db):
    ann = db.add_participant(Participant(id=None, name='Ann'))
    bob = db.add_participant(Participant(id=None, name='Bob'))

    db.add_expense(Expense(id=None, amount=80.0, category=ExpenseCategory.FOOD, paid_by=ann))
    db.add_expense(Expense(
        id=None,
        amount=20.0,
        category=ExpenseCategory.DRINKS,
        paid_by=bob,
        split_between=Subset((bob,)),
        date='2024-07-01',
        description='Beers'
    ))

    first, second = db.get_expenses()

    assert first.split_between is ALL_PARTICIPANTS
    assert second.split_between == Subset((bob,))
    assert second.description == 'Beers'
    assert second.date == '2024-07-01'
    assert first.id < second.id


def test_default_policy_is_equal_split(db):
    assert db.get_policy() == AllocationPolicy.EQUAL_SPLIT


def test_leaving_custom_ratio_resets_ratios(db):
    smiths = add_family(db, ratio=2.5)
    db.set_policy(AllocationPolicy.CUSTOM_RATIO)
    assert db.get_participant_by_id(smiths).custom_ratio == 2.5

    db.set_policy(AllocationPolicy.PER_PERSON)

    assert db.get_policy() == AllocationPolicy.PER_PERSON
    assert db.get_participant_by_id(smiths).custom_ratio == 1


def test_update_participant(db):
    smiths = add_family(db)

    assert db.update_participant(smiths, custom_ratio=3.0, family=FamilyComposition(adults=1, children=4))

    updated = db.get_participant_by_id(smiths)
    assert updated.custom_ratio == 3.0
    assert updated.family == FamilyComposition(adults=1, children=4)


def test_update_missing_participant(db):
    assert db.update_participant(404, custom_ratio=2.0) is False
    assert db.get_participant_by_id(404) is None


def test_clear_all_keeps_policy(db):
    ann = db.add_participant(Participant(id=None, name='Ann'))
    db.add_expense(Expense(id=None, amount=10.0, category=ExpenseCategory.OTHER, paid_by=ann))
    db.set_policy(AllocationPolicy.PER_PERSON)

    db.clear_all()

    assert db.get_participants() == []
    assert db.get_expenses() == []
    assert db.get_policy() == AllocationPolicy.PER_PERSON
