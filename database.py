import sqlite3
import json
from datetime import datetime
from typing import List, Optional
from models import (
    AllocationPolicy,
    Expense,
    ExpenseCategory,
    FamilyComposition,
    Participant,
    ParticipantKind,
    selection_from_ids
)
from config import Config

class Database:
    """Database manager for the trip roster, expense log and policy"""

    def __init__(self, db_path: str = None):
        self.db_path = db_path or Config.DATABASE_PATH
        self.init_db()

    def get_connection(self):
        """Get database connection"""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self):
        """Initialize database tables"""
        conn = self.get_connection()
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS participants (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                kind TEXT NOT NULL,
                adults INTEGER,
                children INTEGER,
                custom_ratio REAL NOT NULL DEFAULT 1,
                phone_number TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS expenses (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                amount REAL NOT NULL,
                category TEXT NOT NULL,
                paid_by INTEGER NOT NULL,
                participants_data TEXT NOT NULL,
                date TEXT,
                description TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        ''')

        cursor.execute('''
            INSERT OR IGNORE INTO settings (key, value) VALUES ('policy', ?)
        ''', (AllocationPolicy.EQUAL_SPLIT.value,))

        conn.commit()
        conn.close()

    @staticmethod
    def _row_to_participant(row) -> Participant:
        kind = ParticipantKind(row['kind'])
        family = None
        if kind == ParticipantKind.FAMILY:
            family = FamilyComposition(adults=row['adults'], children=row['children'])

        return Participant(
            id=row['id'],
            name=row['name'],
            kind=kind,
            family=family,
            custom_ratio=row['custom_ratio'],
            phone_number=row['phone_number']
        )

    @staticmethod
    def _row_to_expense(row) -> Expense:
        return Expense(
            id=row['id'],
            amount=row['amount'],
            category=ExpenseCategory(row['category']),
            paid_by=row['paid_by'],
            split_between=selection_from_ids(json.loads(row['participants_data'])),
            date=row['date'],
            description=row['description'] or ''
        )

    def add_participant(self, participant: Participant) -> int:
        """Save participant to database"""
        conn = self.get_connection()
        cursor = conn.cursor()

        family = participant.family
        cursor.execute('''
            INSERT INTO participants (name, kind, adults, children, custom_ratio, phone_number, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        ''', (
            participant.name,
            participant.kind.value,
            family.adults if family else None,
            family.children if family else None,
            participant.custom_ratio,
            participant.phone_number,
            datetime.now().isoformat()
        ))

        participant_id = cursor.lastrowid
        conn.commit()
        conn.close()

        return participant_id

    def get_participants(self) -> List[Participant]:
        """Retrieve the roster in the order participants joined"""
        conn = self.get_connection()
        cursor = conn.cursor()

        cursor.execute('SELECT * FROM participants ORDER BY id')
        rows = cursor.fetchall()
        conn.close()

        return [self._row_to_participant(row) for row in rows]

    def get_participant_by_id(self, participant_id: int) -> Optional[Participant]:
        conn = self.get_connection()
        cursor = conn.cursor()

        cursor.execute('SELECT * FROM participants WHERE id = ?', (participant_id,))
        row = cursor.fetchone()
        conn.close()

        if not row:
            return None

        return self._row_to_participant(row)

    def update_participant(self, participant_id: int, custom_ratio: float = None,
                           family: FamilyComposition = None) -> bool:
        """Update a participant's custom ratio and/or family composition"""
        conn = self.get_connection()
        cursor = conn.cursor()

        cursor.execute('SELECT id FROM participants WHERE id = ?', (participant_id,))
        found = cursor.fetchone() is not None

        if found and custom_ratio is not None:
            cursor.execute('UPDATE participants SET custom_ratio = ? WHERE id = ?',
                           (custom_ratio, participant_id))

        if found and family is not None:
            cursor.execute('''
                UPDATE participants SET adults = ?, children = ?
                WHERE id = ? AND kind = ?
            ''', (family.adults, family.children, participant_id, ParticipantKind.FAMILY.value))

        conn.commit()
        conn.close()

        return found

    def add_expense(self, expense: Expense) -> int:
        """Save expense to database"""
        conn = self.get_connection()
        cursor = conn.cursor()

        cursor.execute('''
            INSERT INTO expenses (amount, category, paid_by, participants_data, date, description, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        ''', (
            expense.amount,
            expense.category.value,
            expense.paid_by,
            json.dumps(expense.split_between.to_list()),
            expense.date,
            expense.description,
            datetime.now().isoformat()
        ))

        expense_id = cursor.lastrowid
        conn.commit()
        conn.close()

        return expense_id

    def get_expenses(self) -> List[Expense]:
        """Retrieve all expenses in the order they were recorded"""
        conn = self.get_connection()
        cursor = conn.cursor()

        cursor.execute('SELECT * FROM expenses ORDER BY id')
        rows = cursor.fetchall()
        conn.close()

        return [self._row_to_expense(row) for row in rows]

    def get_policy(self) -> AllocationPolicy:
        conn = self.get_connection()
        cursor = conn.cursor()

        cursor.execute("SELECT value FROM settings WHERE key = 'policy'")
        row = cursor.fetchone()
        conn.close()

        return AllocationPolicy(row['value'])

    def set_policy(self, policy: AllocationPolicy):
        """
        Switch the allocation policy.

        Side effect: moving to any policy other than custom ratio resets every
        participant's custom_ratio to 1, in the same transaction.
        """
        conn = self.get_connection()
        cursor = conn.cursor()

        cursor.execute("UPDATE settings SET value = ? WHERE key = 'policy'", (policy.value,))
        if policy != AllocationPolicy.CUSTOM_RATIO:
            cursor.execute('UPDATE participants SET custom_ratio = 1')

        conn.commit()
        conn.close()

    def clear_all(self):
        """Drop every participant and expense to start over"""
        conn = self.get_connection()
        cursor = conn.cursor()

        cursor.execute('DELETE FROM expenses')
        cursor.execute('DELETE FROM participants')

        conn.commit()
        conn.close()
