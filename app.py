from flask import Flask, Blueprint, Response, current_app, request, jsonify
from flask_cors import CORS
import json
import traceback

from config import Config
from database import Database
from engine import compute_trip
from exceptions import ExpenseSplitError
from models import AllocationPolicy, Expense, FamilyComposition, Participant
from utils import (
    build_export,
    send_whatsapp_notification,
    summarize_expenses,
    validate_custom_ratio,
    validate_expense_data,
    validate_family_data,
    validate_participant_data,
    validate_policy
)

api = Blueprint('api', __name__)

def get_db() -> Database:
    return current_app.extensions['trip_db']

def compute_current_trip():
    """Recompute shares, balances and settlements from what is stored now"""
    db = get_db()
    participants = db.get_participants()
    expenses = db.get_expenses()
    result = compute_trip(participants, expenses, db.get_policy())
    return participants, expenses, result

def split_error(e: ExpenseSplitError):
    print(f"Cannot split expenses: {str(e)}")
    return jsonify({'error': str(e)}), 422

def server_error(context: str, e: Exception):
    print(f"Error {context}: {str(e)}")
    traceback.print_exc()
    return jsonify({'error': f'Server error: {str(e)}'}), 500

@api.route('/')
def index():
    """List the available endpoints"""
    return jsonify({
        'name': 'Vacation Expense Splitter',
        'endpoints': sorted(
            str(rule) for rule in current_app.url_map.iter_rules()
            if rule.endpoint.startswith('api.')
        )
    }), 200

@api.route('/api/participants', methods=['POST'])
def create_participant():
    """Add a participant to the roster"""
    try:
        data = request.get_json(silent=True) or {}
        db = get_db()

        is_valid, error_message = validate_participant_data(data, len(db.get_participants()))
        if not is_valid:
            return jsonify({'error': error_message}), 400

        # New participants start at ratio 1 outside the custom_ratio policy
        if 'customRatio' in data and db.get_policy() != AllocationPolicy.CUSTOM_RATIO:
            return jsonify({'error': 'Custom ratios can only be set under the custom_ratio policy'}), 400

        participant = Participant.from_dict(dict(data, id=None))
        participant.id = db.add_participant(participant)

        return jsonify({
            'success': True,
            'participant': participant.to_dict()
        }), 201

    except Exception as e:
        return server_error('creating participant', e)

@api.route('/api/participants', methods=['GET'])
def get_participants():
    try:
        participants = get_db().get_participants()
        return jsonify({
            'success': True,
            'participants': [p.to_dict() for p in participants]
        }), 200

    except Exception as e:
        return server_error('getting participants', e)

@api.route('/api/participants/<int:participant_id>', methods=['PATCH'])
def update_participant(participant_id):
    """Update a participant's custom ratio or family composition"""
    try:
        data = request.get_json(silent=True) or {}
        db = get_db()

        participant = db.get_participant_by_id(participant_id)
        if not participant:
            return jsonify({'error': 'Participant not found'}), 404

        custom_ratio = None
        if 'customRatio' in data:
            if db.get_policy() != AllocationPolicy.CUSTOM_RATIO:
                return jsonify({'error': 'Custom ratios can only be set under the custom_ratio policy'}), 400
            is_valid, error_message = validate_custom_ratio(data['customRatio'])
            if not is_valid:
                return jsonify({'error': error_message}), 400
            custom_ratio = float(data['customRatio'])

        family = None
        if 'familyMembers' in data:
            if not participant.is_family:
                return jsonify({'error': 'Only families have family members'}), 400
            is_valid, error_message = validate_family_data(data['familyMembers'])
            if not is_valid:
                return jsonify({'error': error_message}), 400
            members = data['familyMembers']
            family = FamilyComposition(
                adults=int(members.get('adults', 1)),
                children=int(members.get('children', 0))
            )

        db.update_participant(participant_id, custom_ratio=custom_ratio, family=family)

        return jsonify({
            'success': True,
            'participant': db.get_participant_by_id(participant_id).to_dict()
        }), 200

    except Exception as e:
        return server_error('updating participant', e)

@api.route('/api/expenses', methods=['POST'])
def create_expense():
    """Record a new expense"""
    try:
        data = request.get_json(silent=True) or {}
        db = get_db()

        roster_ids = [p.id for p in db.get_participants()]
        is_valid, error_message = validate_expense_data(data, roster_ids)
        if not is_valid:
            return jsonify({'error': error_message}), 400

        expense = Expense.from_dict(dict(data, id=None))
        expense.id = db.add_expense(expense)

        return jsonify({
            'success': True,
            'expense': expense.to_dict()
        }), 201

    except Exception as e:
        return server_error('creating expense', e)

@api.route('/api/expenses', methods=['GET'])
def get_expenses():
    try:
        expenses = get_db().get_expenses()
        return jsonify({
            'success': True,
            'expenses': [e.to_dict() for e in expenses]
        }), 200

    except Exception as e:
        return server_error('getting expenses', e)

@api.route('/api/policy', methods=['GET'])
def get_policy():
    try:
        return jsonify({'success': True, 'policy': get_db().get_policy().value}), 200

    except Exception as e:
        return server_error('getting policy', e)

@api.route('/api/policy', methods=['PUT'])
def set_policy():
    """Change the allocation policy (resets custom ratios unless custom_ratio)"""
    try:
        data = request.get_json(silent=True) or {}

        is_valid, error_message = validate_policy(data.get('policy'))
        if not is_valid:
            return jsonify({'error': error_message}), 400

        policy = AllocationPolicy(data['policy'])
        get_db().set_policy(policy)

        return jsonify({'success': True, 'policy': policy.value}), 200

    except Exception as e:
        return server_error('setting policy', e)

@api.route('/api/shares', methods=['GET'])
def get_shares():
    try:
        _, _, result = compute_current_trip()
        return jsonify({
            'success': True,
            'shares': {str(pid): s.to_dict() for pid, s in result.shares.items()}
        }), 200

    except ExpenseSplitError as e:
        return split_error(e)
    except Exception as e:
        return server_error('computing shares', e)

@api.route('/api/balances', methods=['GET'])
def get_balances():
    try:
        _, _, result = compute_current_trip()
        return jsonify({
            'success': True,
            'balances': {str(pid): b.to_dict() for pid, b in result.balances.items()}
        }), 200

    except ExpenseSplitError as e:
        return split_error(e)
    except Exception as e:
        return server_error('computing balances', e)

@api.route('/api/settlements', methods=['GET'])
def get_settlements():
    try:
        _, _, result = compute_current_trip()
        return jsonify({
            'success': True,
            'settlements': [s.to_dict() for s in result.settlements]
        }), 200

    except ExpenseSplitError as e:
        return split_error(e)
    except Exception as e:
        return server_error('computing settlements', e)

@api.route('/api/summary', methods=['GET'])
def get_summary():
    try:
        return jsonify({
            'success': True,
            'summary': summarize_expenses(get_db().get_expenses())
        }), 200

    except Exception as e:
        return server_error('summarizing expenses', e)

@api.route('/api/export', methods=['GET'])
def export_trip():
    """Download the whole trip as a JSON document"""
    try:
        participants, expenses, result = compute_current_trip()
        document = build_export(participants, expenses, result)

        filename = current_app.config['EXPORT_FILENAME']
        return Response(
            json.dumps(document, indent=2),
            mimetype='application/json',
            headers={'Content-Disposition': f'attachment; filename={filename}'}
        )

    except ExpenseSplitError as e:
        return split_error(e)
    except Exception as e:
        return server_error('exporting trip', e)

@api.route('/api/notifications', methods=['POST'])
def send_notifications():
    """Send each participant with a phone number their part of the plan"""
    try:
        data = request.get_json(silent=True) or {}
        participants, _, result = compute_current_trip()

        wanted = data.get('participants') or [p.id for p in participants]
        names = {p.id: p.name for p in participants}

        notification_results = []
        for participant in participants:
            if participant.id not in wanted or not participant.phone_number:
                continue
            success = send_whatsapp_notification(
                participant,
                result.balances[participant.id].net,
                result.settlements,
                names,
                current_app.config['TRIP_NAME']
            )
            notification_results.append({
                'name': participant.name,
                'success': success
            })

        return jsonify({
            'success': True,
            'notifications': notification_results
        }), 200

    except ExpenseSplitError as e:
        return split_error(e)
    except Exception as e:
        return server_error('sending notifications', e)

@api.route('/api/trip', methods=['DELETE'])
def clear_trip():
    """Clear all participants and expenses and start over"""
    try:
        get_db().clear_all()
        return jsonify({
            'success': True,
            'message': 'All data cleared'
        }), 200

    except Exception as e:
        return server_error('clearing trip', e)

def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    CORS(app)

    # Initialize database
    app.extensions['trip_db'] = Database(app.config['DATABASE_PATH'])

    app.register_blueprint(api)

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Endpoint not found'}), 404

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({'error': 'Internal server error'}), 500

    return app

if __name__ == '__main__':
    print("Starting Vacation Expense Splitter...")
    print(f"Database: {Config.DATABASE_PATH}")
    print(f"Twilio configured: {bool(Config.TWILIO_ACCOUNT_SID)}")
    create_app().run(host='0.0.0.0', port=5000, debug=Config.DEBUG)
