import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Application configuration"""

    # Flask settings
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('DEBUG', 'True').lower() == 'true'
    TESTING = False

    # Database settings
    DATABASE_PATH = os.getenv('DATABASE_PATH', 'trip.db')

    # Twilio settings for WhatsApp
    TWILIO_ACCOUNT_SID = os.getenv('TWILIO_ACCOUNT_SID', '')
    TWILIO_AUTH_TOKEN = os.getenv('TWILIO_AUTH_TOKEN', '')
    TWILIO_WHATSAPP_NUMBER = os.getenv('TWILIO_WHATSAPP_NUMBER', 'whatsapp:+14155238886')

    # Application settings
    TRIP_NAME = os.getenv('TRIP_NAME', 'our trip')
    EXPORT_FILENAME = 'vacation-expenses.json'
    MAX_PARTICIPANTS = 50
    MAX_FAMILY_MEMBERS = 20
    MIN_AMOUNT = 0.01
    MAX_AMOUNT = 1000000
    MIN_CUSTOM_RATIO = 0.1
