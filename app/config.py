import os

class BaseConfig:
    SECRET_KEY = os.getenv('SECRET_KEY', 'change-me')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///app.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_SECURE = False

    # 'sql' uses the local database, 'rest' a PostgREST compatible endpoint
    RECORD_STORE_BACKEND = os.getenv('RECORD_STORE_BACKEND', 'sql')
    RECORD_STORE_URL = os.getenv('RECORD_STORE_URL', '')
    RECORD_STORE_API_KEY = os.getenv('RECORD_STORE_API_KEY', '')
    RECORD_STORE_TIMEOUT = int(os.getenv('RECORD_STORE_TIMEOUT', '10'))

    LOW_STOCK_REPORT_LIMIT = int(os.getenv('LOW_STOCK_REPORT_LIMIT', '5'))

class DevConfig(BaseConfig):
    DEBUG = True
    ENV = 'development'

class TestConfig(BaseConfig):
    TESTING = True
    ENV = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    RECORD_STORE_BACKEND = 'sql'

class ProdConfig(BaseConfig):
    DEBUG = False
    ENV = 'production'
    SESSION_COOKIE_SECURE = True
