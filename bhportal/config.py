"""
bhportal configuration

Flask config classes plus the wizard behaviour settings derived from them.
"""

import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional


class Config:
    """Base configuration class."""

    # Security
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'change-this-secret-key-in-production'

    # Database
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///bhportal.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'connect_args': {'check_same_thread': False} if 'sqlite' in SQLALCHEMY_DATABASE_URI else {}
    }

    # Application
    APP_NAME = "Behavioral Health Portal"

    # Wizards
    # Base URL of the records API the wizards save to, e.g. https://portal.example.org/api;
    # empty means the records API of this app
    WIZARD_GATEWAY_URL = os.environ.get('WIZARD_GATEWAY_URL', '')
    WIZARD_GATEWAY_TIMEOUT = float(os.environ.get('WIZARD_GATEWAY_TIMEOUT', '30'))
    WIZARD_NAVIGATE_TO_FIRST_ERROR = os.environ.get('WIZARD_NAVIGATE_TO_FIRST_ERROR', '').lower() in ('1', 'true', 'yes')

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOGGING_CONFIG = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'default': {
                'format': '[%(asctime)s] %(levelname)s in %(module)s: %(message)s',
            },
            'detailed': {
                'format': '[%(asctime)s] %(levelname)s %(name)s %(funcName)s():%(lineno)d: %(message)s',
            }
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'level': 'DEBUG',
                'formatter': 'default',
                'stream': 'ext://sys.stdout'
            },
        },
        'loggers': {
            'bhportal': {
                'level': LOG_LEVEL,
                'handlers': ['console'],
                'propagate': False
            },
        }
    }


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    TESTING = False

    LOGGING_CONFIG = dict(Config.LOGGING_CONFIG)
    LOGGING_CONFIG['formatters'] = Config.LOGGING_CONFIG['formatters']
    LOGGING_CONFIG['handlers'] = {
        'console': dict(Config.LOGGING_CONFIG['handlers']['console'], formatter='detailed'),
    }
    LOGGING_CONFIG['loggers'] = {
        'bhportal': dict(Config.LOGGING_CONFIG['loggers']['bhportal'], level='DEBUG'),
    }


class TestingConfig(Config):
    """Testing configuration."""

    TESTING = True
    SECRET_KEY = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    WIZARD_GATEWAY_URL = ''
    WIZARD_NAVIGATE_TO_FIRST_ERROR = False


@dataclass
class WizardBehaviorConfig:
    """Behavior of the wizard engines"""

    # Move to the first step holding an error when final submission fails
    navigate_to_first_error: bool = False

    # Persistence gateway
    gateway_url: Optional[str] = None
    gateway_timeout: float = 30.0

    @classmethod
    def from_app_config(cls, config: Mapping[str, Any]) -> 'WizardBehaviorConfig':
        return cls(
            navigate_to_first_error=bool(config.get('WIZARD_NAVIGATE_TO_FIRST_ERROR', False)),
            gateway_url=config.get('WIZARD_GATEWAY_URL') or None,
            gateway_timeout=float(config.get('WIZARD_GATEWAY_TIMEOUT', 30.0)),
        )


# Configuration selection
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'default': Config,
}


def get_config():
    """Get configuration based on environment."""
    return config[os.environ.get('BHPORTAL_ENV', 'default')]
