"""
Shared fixtures: an application on an in-memory SQLite database, a test
client and a mocked persistence gateway.
"""

from unittest.mock import MagicMock

import pytest

from bhportal import create_app
from bhportal.config import TestingConfig
from bhportal.forms import ASAM_WIZARD, INTAKE_WIZARD
from bhportal.gateway import GatewayResult, PersistenceGateway
from bhportal.models import db


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def gateway():
    """Gateway mock creating record ``rec-1`` and echoing updates"""
    mock = MagicMock(spec=PersistenceGateway)

    def save(record_id, payload):
        if record_id is None:
            return GatewayResult('rec-1', {'id': 'rec-1'}, created=True)
        return GatewayResult(record_id, {'id': record_id}, created=False)

    mock.save.side_effect = save
    return mock


@pytest.fixture
def asam():
    return ASAM_WIZARD


@pytest.fixture
def intake():
    return INTAKE_WIZARD


@pytest.fixture
def asam_form():
    """A blank assessment with every field needed for submission filled in"""
    form = ASAM_WIZARD.make_defaults()
    form.update({
        'patientName': 'Jane Doe',
        'dateOfBirth': '1990-01-01',
        'counselorName': 'Alex Counselor',
        'dimension1Severity': 2,
    })
    return form


@pytest.fixture
def intake_form():
    """A blank intake with every field needed for submission filled in"""
    form = INTAKE_WIZARD.make_defaults()
    form.update({
        'residentName': 'John Roe',
        'dateOfBirth': '1985-06-15',
        'religion': 'None',
    })
    form['signatures'].update({
        'clientSignature': 'John Roe',
        'assessorSignature': 'Sam Assessor',
    })
    return form
