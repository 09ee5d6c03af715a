import os

class BaseConfig:
    SECRET_KEY = os.getenv('SECRET_KEY', 'change-me')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///bakumania.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CATALOG_DEFAULT_LIMIT = int(os.getenv('CATALOG_DEFAULT_LIMIT', '10'))
    CATALOG_MAX_LIMIT = int(os.getenv('CATALOG_MAX_LIMIT', '100'))
    PRICE_HISTORY_DETAIL_LIMIT = int(os.getenv('PRICE_HISTORY_DETAIL_LIMIT', '20'))

class DevConfig(BaseConfig):
    DEBUG = True
    ENV = 'development'

class ProdConfig(BaseConfig):
    DEBUG = False
    ENV = 'production'

class TestConfig(BaseConfig):
    TESTING = True
    ENV = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
