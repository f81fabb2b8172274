from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Tuple, Iterable, Union

class ParticipantKind(str, Enum):
    INDIVIDUAL = "individual"
    FAMILY = "family"

class AllocationPolicy(str, Enum):
    """How family participants are weighted against individuals"""
    EQUAL_SPLIT = "equal_split"
    PER_PERSON = "per_person"
    CUSTOM_RATIO = "custom_ratio"

class ExpenseCategory(str, Enum):
    ACCOMMODATION = "accommodation"
    FLIGHTS = "flights"
    CAR = "car"
    FOOD = "food"
    DRINKS = "drinks"
    ACTIVITIES = "activities"
    SHOPPING = "shopping"
    OTHER = "other"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]

CATEGORY_LABELS = {
    ExpenseCategory.ACCOMMODATION: 'Accommodation',
    ExpenseCategory.FLIGHTS: 'Flights',
    ExpenseCategory.CAR: 'Car Rental/Taxi',
    ExpenseCategory.FOOD: 'Food',
    ExpenseCategory.DRINKS: 'Drinks',
    ExpenseCategory.ACTIVITIES: 'Activities',
    ExpenseCategory.SHOPPING: 'Shopping',
    ExpenseCategory.OTHER: 'Other',
}

@dataclass(frozen=True)
class FamilyComposition:
    adults: int = 1
    children: int = 0

    def to_dict(self):
        return {'adults': self.adults, 'children': self.children}

@dataclass
class Participant:
    """A trip participant: a single person or a whole family"""
    id: int
    name: str
    kind: ParticipantKind = ParticipantKind.INDIVIDUAL
    family: Optional[FamilyComposition] = None
    custom_ratio: float = 1.0
    phone_number: Optional[str] = None

    @property
    def is_family(self) -> bool:
        return self.kind == ParticipantKind.FAMILY

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'type': self.kind.value,
            'familyMembers': self.family.to_dict() if self.family else None,
            'customRatio': self.custom_ratio,
            'phone_number': self.phone_number
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Participant':
        kind = ParticipantKind(data.get('type', ParticipantKind.INDIVIDUAL.value))
        family = None
        if kind == ParticipantKind.FAMILY:
            members = data.get('familyMembers') or {}
            family = FamilyComposition(
                adults=int(members.get('adults', 1)),
                children=int(members.get('children', 0))
            )
        return cls(
            id=data.get('id'),
            name=data['name'].strip(),
            kind=kind,
            family=family,
            custom_ratio=float(data.get('customRatio', 1.0)),
            phone_number=(data.get('phone_number') or '').strip() or None
        )

class AllParticipants:
    """Split across whoever is on the roster when the split is computed"""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def resolve(self, roster_ids: List[int]) -> List[int]:
        return list(roster_ids)

    def to_list(self) -> List[int]:
        return []

    def __repr__(self) -> str:
        return "ALL_PARTICIPANTS"

ALL_PARTICIPANTS = AllParticipants()

@dataclass(frozen=True)
class Subset:
    """Split across an explicit, ordered set of participant ids"""
    ids: Tuple[int, ...]

    def __post_init__(self):
        # keep first occurrence order, drop duplicates
        object.__setattr__(self, 'ids', tuple(dict.fromkeys(self.ids)))

    def resolve(self, roster_ids: List[int]) -> List[int]:
        return list(self.ids)

    def to_list(self) -> List[int]:
        return list(self.ids)

def selection_from_ids(ids: Optional[Iterable[int]]) -> Union[AllParticipants, Subset]:
    """An empty or missing id list means everyone"""
    ids = list(ids or [])
    if not ids:
        return ALL_PARTICIPANTS
    return Subset(tuple(ids))

@dataclass
class Expense:
    """Represents an expense paid by one participant"""
    id: int
    amount: float
    category: ExpenseCategory
    paid_by: int
    split_between: Union[AllParticipants, Subset] = ALL_PARTICIPANTS
    date: Optional[str] = None
    description: str = ''

    def to_dict(self):
        return {
            'id': self.id,
            'amount': self.amount,
            'category': self.category.value,
            'paidBy': self.paid_by,
            'participants': self.split_between.to_list(),
            'date': self.date,
            'description': self.description
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Expense':
        return cls(
            id=data.get('id'),
            amount=float(data['amount']),
            category=ExpenseCategory(data['category']),
            paid_by=data['paidBy'],
            split_between=selection_from_ids(data.get('participants')),
            date=data.get('date'),
            description=(data.get('description') or '').strip()
        )

@dataclass
class ExpenseShare:
    expense_id: int
    share: float

    def to_dict(self):
        return {'expense_id': self.expense_id, 'share': self.share}

@dataclass
class ShareBreakdown:
    """What one participant owes in total, expense by expense"""
    total: float = 0.0
    expenses: List[ExpenseShare] = field(default_factory=list)

    def to_dict(self):
        return {
            'total': round(self.total, 2),
            'expenses': [e.to_dict() for e in self.expenses]
        }

@dataclass
class Balance:
    paid: float = 0.0
    owes: float = 0.0
    net: float = 0.0  # Positive means receives, negative means owes

    def to_dict(self):
        return {
            'paid': round(self.paid, 2),
            'owes': round(self.owes, 2),
            'net': round(self.net, 2)
        }

@dataclass
class Settlement:
    """Represents a settlement between two participants"""
    from_id: int
    to_id: int
    amount: float

    def to_dict(self):
        return {
            'from': self.from_id,
            'to': self.to_id,
            'amount': round(self.amount, 2)
        }
