import math
import re
from typing import Dict, List, Tuple
from twilio.rest import Client
from config import Config
from engine import TripResult
from models import (
    AllocationPolicy,
    Expense,
    ExpenseCategory,
    Participant,
    ParticipantKind,
    Settlement
)

def validate_phone_number(phone: str) -> bool:
    """Validate phone number format"""
    if not phone:
        return False

    # Remove all non-digit characters
    digits = re.sub(r'\D', '', phone)

    # Phone number should have 10-15 digits
    return 10 <= len(digits) <= 15

def format_phone_number(phone: str) -> str:
    """Format phone number for WhatsApp (E.164 format)"""
    if not phone:
        return None

    digits = re.sub(r'\D', '', phone)

    # If doesn't start with country code, assume +1 (US)
    if len(digits) == 10:
        digits = '1' + digits

    return f'whatsapp:+{digits}'

def _parse_int(value):
    if isinstance(value, bool):
        raise TypeError("booleans are not counts")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError("not a whole number")
    return int(value)

def _parse_amount(value) -> float:
    if isinstance(value, bool):
        raise TypeError("booleans are not amounts")
    amount = float(value)
    if not math.isfinite(amount):
        raise ValueError("amount must be finite")
    return amount

def validate_custom_ratio(value) -> Tuple[bool, str]:
    try:
        ratio = _parse_amount(value)
    except (ValueError, TypeError):
        return False, "Invalid custom ratio"

    if ratio < Config.MIN_CUSTOM_RATIO:
        return False, f"Custom ratio must be at least {Config.MIN_CUSTOM_RATIO}"

    return True, ""

def validate_family_data(members) -> Tuple[bool, str]:
    if not isinstance(members, dict):
        return False, "Family members must give adults and children"

    try:
        adults = _parse_int(members.get('adults', 1))
        children = _parse_int(members.get('children', 0))
    except (ValueError, TypeError):
        return False, "Invalid number of family members"

    if adults < 1:
        return False, "A family needs at least one adult"
    if children < 0:
        return False, "Number of children cannot be negative"
    if adults + children > Config.MAX_FAMILY_MEMBERS:
        return False, f"A family cannot have more than {Config.MAX_FAMILY_MEMBERS} members"

    return True, ""

def validate_participant_data(data: dict, roster_size: int = 0) -> Tuple[bool, str]:
    """
    Validate participant input data
    Returns (is_valid, error_message)
    """
    name = data.get('name') if data else None
    if name is not None and not isinstance(name, str):
        return False, "Participant name must be text"
    if not name or not name.strip():
        return False, "Participant name is required"

    if roster_size >= Config.MAX_PARTICIPANTS:
        return False, f"Number of participants cannot exceed {Config.MAX_PARTICIPANTS}"

    kinds = [k.value for k in ParticipantKind]
    kind = data.get('type', ParticipantKind.INDIVIDUAL.value)
    if kind not in kinds:
        return False, f"Participant type must be one of: {', '.join(kinds)}"

    if kind == ParticipantKind.FAMILY.value:
        is_valid, error_message = validate_family_data(data.get('familyMembers') or {})
        if not is_valid:
            return False, error_message

    if 'customRatio' in data:
        is_valid, error_message = validate_custom_ratio(data['customRatio'])
        if not is_valid:
            return False, error_message

    phone = data.get('phone_number') or ''
    if not isinstance(phone, str):
        return False, f"Phone number for {name} must be text"
    phone = phone.strip()
    if phone and not validate_phone_number(phone):
        return False, f"Invalid phone number for {name}"

    return True, ""

def validate_expense_data(data: dict, roster_ids: List[int]) -> Tuple[bool, str]:
    """
    Validate expense input data against the current roster
    Returns (is_valid, error_message)
    """
    if not data:
        return False, "Expense data is required"

    # Check required fields
    for key, label in (('amount', 'Amount'), ('category', 'Category'), ('paidBy', 'Payer')):
        if data.get(key) in (None, ''):
            return False, f"{label} is required"

    try:
        amount = _parse_amount(data['amount'])
        if amount < Config.MIN_AMOUNT:
            return False, f"Amount must be at least ${Config.MIN_AMOUNT}"
        if amount > Config.MAX_AMOUNT:
            return False, f"Amount cannot exceed ${Config.MAX_AMOUNT}"
    except (ValueError, TypeError):
        return False, "Invalid amount"

    categories = [c.value for c in ExpenseCategory]
    if data['category'] not in categories:
        return False, f"Category must be one of: {', '.join(categories)}"

    # True == 1, so booleans would otherwise match the first participant
    if isinstance(data['paidBy'], bool) or data['paidBy'] not in roster_ids:
        return False, f"Unknown payer {data['paidBy']}"

    participants = data.get('participants') or []
    if not isinstance(participants, list):
        return False, "Participants must be a list of participant ids"
    for participant_id in participants:
        if isinstance(participant_id, bool) or participant_id not in roster_ids:
            return False, f"Unknown participant {participant_id}"

    for key, label in (('description', 'Description'), ('date', 'Date')):
        if data.get(key) is not None and not isinstance(data[key], str):
            return False, f"{label} must be text"

    return True, ""

def validate_policy(value) -> Tuple[bool, str]:
    policies = [p.value for p in AllocationPolicy]
    if value not in policies:
        return False, f"Policy must be one of: {', '.join(policies)}"
    return True, ""

def summarize_expenses(expenses: List[Expense]) -> dict:
    """Grand total plus per-category totals, skipping empty categories"""
    by_category = []
    for category in ExpenseCategory:
        total = sum(e.amount for e in expenses if e.category == category)
        if total > 0:
            by_category.append({'category': category.label, 'total': total})

    return {
        'totalExpenses': sum(e.amount for e in expenses),
        'byCategory': by_category
    }

def build_export(participants: List[Participant], expenses: List[Expense],
                 result: TripResult) -> dict:
    """Assemble the downloadable trip document from a computed trip"""
    by_id = {p.id: p for p in participants}
    expenses_by_id = {e.id: e for e in expenses}

    individual_shares = []
    for participant_id, breakdown in result.shares.items():
        individual_shares.append({
            'participant': by_id[participant_id].to_dict(),
            'total': breakdown.total,
            'expenses': [
                dict(expenses_by_id[s.expense_id].to_dict(), share=s.share)
                for s in breakdown.expenses
            ]
        })

    return {
        'participants': [p.to_dict() for p in participants],
        'expenses': [e.to_dict() for e in expenses],
        'summary': summarize_expenses(expenses),
        'individualShares': individual_shares,
        'settlements': [
            {
                'from': by_id[s.from_id].to_dict(),
                'to': by_id[s.to_id].to_dict(),
                'amount': s.amount
            }
            for s in result.settlements
        ]
    }

def build_notification_message(participant: Participant, net: float,
                               settlements: List[Settlement], names: Dict[int, str],
                               trip_name: str) -> str:
    message = f"Hi {participant.name}! The expense split for {trip_name} is ready.\n\n"

    if net > 0.01:
        message += f"You get back ${abs(net):.2f}.\n\n"
        message += "Settlement details:\n"

        # Find who owes this participant
        for settlement in settlements:
            if settlement.to_id == participant.id:
                message += f"• {names[settlement.from_id]} owes you ${settlement.amount:.2f}\n"

    elif net < -0.01:
        message += f"You owe ${abs(net):.2f}.\n\n"
        message += "Settlement details:\n"

        # Find who this participant owes
        for settlement in settlements:
            if settlement.from_id == participant.id:
                message += f"• Pay ${settlement.amount:.2f} to {names[settlement.to_id]}\n"

    else:
        message += "You're all settled up! No payments needed.\n"

    message += "\nReply CONFIRM to acknowledge."
    return message

def send_whatsapp_notification(participant: Participant, net: float,
                               settlements: List[Settlement], names: Dict[int, str],
                               trip_name: str) -> bool:
    """
    Send a participant their part of the settlement plan over WhatsApp
    Returns True if successful, False otherwise
    """
    # Check if Twilio credentials are configured
    if not Config.TWILIO_ACCOUNT_SID or not Config.TWILIO_AUTH_TOKEN:
        print(f"Twilio credentials not configured. Skipping notification for {participant.name}")
        return False

    # Check if participant has phone number
    if not participant.phone_number:
        print(f"No phone number for {participant.name}")
        return False

    try:
        client = Client(Config.TWILIO_ACCOUNT_SID, Config.TWILIO_AUTH_TOKEN)

        message = build_notification_message(participant, net, settlements, names, trip_name)

        twilio_message = client.messages.create(
            from_=Config.TWILIO_WHATSAPP_NUMBER,
            body=message,
            to=format_phone_number(participant.phone_number)
        )

        print(f"WhatsApp notification sent to {participant.name}: {twilio_message.sid}")
        return True

    except Exception as e:
        print(f"Error sending WhatsApp notification to {participant.name}: {str(e)}")
        return False
