# ifimgone/config.py - Environment driven configuration
import os
from datetime import timedelta


def _int_env(name, default):
    return int(os.environ.get(name, str(default)))


class Config:
    """Base configuration"""

    # Basic Flask settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database settings
    DATABASE_URL = os.environ.get('DATABASE_URL') or 'sqlite:///ifimgone.db'
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_recycle': 300,
        'pool_pre_ping': True
    }

    # JWT settings
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or SECRET_KEY
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=24)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=30)

    # CORS settings
    CORS_ORIGINS = ["*"]  # Change this in production

    # Public URL used for message viewing and dashboard links
    APP_URL = os.environ.get('APP_URL', 'http://localhost:3000')

    # Mail settings (NOTIFICATION_BACKEND=mail)
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'localhost')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', '587'))
    MAIL_USE_TLS = os.environ.get('MAIL_USE_TLS', 'true').lower() in ['true', 'on', '1']
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', "If I'm Gone <noreply@ifimgone.app>")

    # Notification collaborator
    NOTIFICATION_BACKEND = os.environ.get('NOTIFICATION_BACKEND', 'functions')  # functions, mail
    NOTIFICATION_FUNCTIONS_URL = os.environ.get('NOTIFICATION_FUNCTIONS_URL', 'http://localhost:54321/functions/v1')
    NOTIFICATION_API_KEY = os.environ.get('NOTIFICATION_API_KEY')
    NOTIFICATION_TIMEOUT = float(os.environ.get('NOTIFICATION_TIMEOUT', '30.0'))

    # Celery settings
    CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', 'redis://localhost:6379/0')
    CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND', 'redis://localhost:6379/0')

    # Inactivity / delivery trigger settings
    DEFAULT_INACTIVITY_THRESHOLD_DAYS = _int_env('DEFAULT_INACTIVITY_THRESHOLD_DAYS', 30)
    INACTIVITY_RESPONSE_WINDOW_DAYS = _int_env('INACTIVITY_RESPONSE_WINDOW_DAYS', 7)
    INACTIVITY_WARNING_LEAD_DAYS = _int_env('INACTIVITY_WARNING_LEAD_DAYS', 7)
    INACTIVITY_WARNING_COOLDOWN_HOURS = _int_env('INACTIVITY_WARNING_COOLDOWN_HOURS', 24)
    ACTIVITY_DEBOUNCE_SECONDS = _int_env('ACTIVITY_DEBOUNCE_SECONDS', 60)
    INACTIVITY_SWEEP_INTERVAL_SECONDS = _int_env('INACTIVITY_SWEEP_INTERVAL_SECONDS', 3600)
    DATE_SWEEP_INTERVAL_SECONDS = _int_env('DATE_SWEEP_INTERVAL_SECONDS', 900)
    DELIVERY_MAX_ATTEMPTS = _int_env('DELIVERY_MAX_ATTEMPTS', 2)
    CONTACT_VERIFICATION_TTL_DAYS = _int_env('CONTACT_VERIFICATION_TTL_DAYS', 7)

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FILE = os.environ.get('LOG_FILE')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///dev_ifimgone.db'


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False

    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL')
    if SQLALCHEMY_DATABASE_URI and SQLALCHEMY_DATABASE_URI.startswith('postgres://'):
        SQLALCHEMY_DATABASE_URI = SQLALCHEMY_DATABASE_URI.replace('postgres://', 'postgresql://')

    # Production CORS settings
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '').split(',') if os.environ.get('CORS_ORIGINS') else []


class TestConfig(Config):
    """Testing configuration"""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=5)
    APP_URL = 'https://app.test'
    NOTIFICATION_FUNCTIONS_URL = 'https://functions.test/v1'
    NOTIFICATION_API_KEY = 'test-key'
    MAIL_SUPPRESS_SEND = True
    LOG_FILE = None


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestConfig,
    'default': DevelopmentConfig
}
