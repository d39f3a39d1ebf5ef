"""
Tests for the wizard pages and their JSON endpoints
"""

from unittest.mock import patch

from bhportal.gateway import GatewayResult, HttpPersistenceGateway
from bhportal.models import AsamAssessment, Intake, RecordStatus, db
from bhportal.records import LocalPersistenceGateway
from bhportal.views.wizard import AsamWizardView


def post(client, form_type, action, wizard=None, **extra):
    body = {'recordId': None, 'currentStep': 1, 'formState': {}}
    if wizard is not None:
        body.update({key: wizard[key] for key in ('recordId', 'currentStep', 'formState', 'fieldErrors')})
    body.update(extra)
    return client.post(f'/wizard/{form_type}/api/{action}', json=body)


class TestWizardPages:

    def test_new(self, client):
        response = client.get('/wizard/asam/new')

        assert response.status_code == 200
        page = response.get_data(as_text=True)
        assert 'ASAM Assessment' in page
        assert 'Step 1 of 8: Demographics' in page
        assert '/wizard/asam/api/advance' in page
        assert '"4 - Very Severe"' in page

    def test_edit_resumes_draft(self, client):
        draft = client.post(
            '/api/intakes', json={'residentName': 'John Roe', 'isDraft': True, 'currentStep': 6}
        ).get_json()['intake']

        response = client.get(f"/wizard/intake/{draft['id']}/edit")

        assert response.status_code == 200
        assert 'Step 6 of 17: Medical' in response.get_data(as_text=True)

    def test_edit_submitted_record(self, client, asam_form):
        record = client.post('/api/asam', json=dict(asam_form, isDraft=False)).get_json()['assessment']

        response = client.get(f"/wizard/asam/{record['id']}/edit")

        assert response.status_code == 409

    def test_edit_missing_record(self, client):
        assert client.get('/wizard/asam/missing/edit').status_code == 404

    def test_unknown_form_type(self, client):
        assert client.get('/wizard/referral/new').status_code == 404


class TestWizardJsonEndpoints:

    def test_status(self, client):
        body = client.get('/wizard/intake/api/status').get_json()

        assert body['success'] is True
        assert body['wizard']['currentStep'] == 1
        assert body['wizard']['totalSteps'] == 17
        assert body['wizard']['formState']['language'] == 'English'
        assert body['events'] == []

    def test_status_of_draft(self, client):
        draft = client.post('/api/asam', json={'isDraft': True, 'currentStep': 3}).get_json()['assessment']

        body = client.get(f"/wizard/asam/api/status?record_id={draft['id']}").get_json()

        assert body['wizard']['recordId'] == draft['id']
        assert body['wizard']['currentStep'] == 3
        assert body['status'] == 'DRAFT'

    def test_advance_blocked(self, client):
        body = post(client, 'asam', 'advance').get_json()

        assert body['success'] is False
        assert body['wizard']['currentStep'] == 1
        assert set(body['wizard']['fieldErrors']) == {'patientName', 'dateOfBirth'}

    def test_advance(self, client):
        body = post(
            client, 'asam', 'advance',
            formState={'patientName': 'Jane Doe', 'dateOfBirth': '1990-01-01'},
        ).get_json()

        assert body['success'] is True
        assert body['wizard']['currentStep'] == 2
        assert body['events'] == [{'type': 'scroll_to_top'}]
        assert body['wizard']['progress']['caption'] == "Step 2 of 8: Substance Use"

    def test_retreat_keeps_posted_errors(self, client):
        body = post(
            client, 'asam', 'retreat', currentStep=3, fieldErrors={'dimension2Severity': 'Out of range'},
        ).get_json()

        assert body['success'] is True
        assert body['wizard']['currentStep'] == 2
        assert body['wizard']['fieldErrors'] == {'dimension2Severity': 'Out of range'}

    def test_validate_step(self, client):
        body = post(
            client, 'intake', 'validate_step', currentStep=6, step=6,
            formState={'medications': [{'name': ''}]},
        ).get_json()

        assert body['success'] is False
        assert body['step'] == 6
        assert body['wizard']['fieldErrors'] == {'medications.0.name': "Medication name is required"}

    def test_validate_unknown_step(self, client):
        response = post(client, 'asam', 'validate_step', step=12)

        assert response.status_code == 400
        assert 'error' in response.get_json()

    def test_invalid_body(self, client):
        response = client.post('/wizard/asam/api/advance', json={'formState': []})

        assert response.status_code == 400

    def test_save_draft_then_resume(self, client):
        first = post(
            client, 'intake', 'save_draft', currentStep=4, formState={'residentName': 'John Roe'},
        ).get_json()

        assert first['success'] is True
        record_id = first['wizard']['recordId']
        assert first['events'] == [{'type': 'record_created', 'recordId': record_id}]
        assert first['notification']['title'] == "Draft Saved"

        second = post(client, 'intake', 'save_draft', wizard=first['wizard']).get_json()

        assert second['outcome']['created'] is False
        record = db.session.get(Intake, record_id)
        assert record.current_step == 4
        assert record.form_data['residentName'] == 'John Roe'
        assert db.session.query(Intake).count() == 1

    def test_submit_rejected(self, client, intake_form):
        intake_form['signatures']['clientSignature'] = ''

        body = post(client, 'intake', 'submit', currentStep=17, formState=intake_form).get_json()

        assert body['success'] is False
        assert body['wizard']['errorSteps'] == [17]
        assert 'signatures.clientSignature' in body['wizard']['fieldErrors']
        assert db.session.query(Intake).count() == 0

    def test_submit_away_from_last_step(self, client, intake_form):
        response = post(client, 'intake', 'submit', currentStep=16, formState=intake_form)

        assert response.status_code == 400

    def test_submit(self, client, intake_form):
        body = post(client, 'intake', 'submit', currentStep=17, formState=intake_form).get_json()

        assert body['success'] is True
        assert body['wizard']['done'] is True
        assert body['notification']['title'] == "Intake Submitted"
        record = db.session.get(Intake, body['wizard']['recordId'])
        assert record.status == RecordStatus.PENDING

    def test_submit_locked_record(self, client, intake_form):
        submitted = post(client, 'intake', 'submit', currentStep=17, formState=intake_form).get_json()

        body = post(client, 'intake', 'save_draft', wizard=submitted['wizard']).get_json()

        assert body['success'] is False
        assert body['notification']['message'] == (
            "This record has already been submitted and can no longer be edited"
        )


class TestGatewaySelection:

    def test_local_gateway_by_default(self, app):
        with app.test_request_context():
            engine = AsamWizardView()._create_engine()

        assert isinstance(engine.gateway, LocalPersistenceGateway)

    def test_http_gateway_when_configured(self, app):
        app.config['WIZARD_GATEWAY_URL'] = 'https://records.example.org/api'
        app.config['WIZARD_GATEWAY_TIMEOUT'] = 12
        with app.test_request_context():
            engine = AsamWizardView()._create_engine()

        assert isinstance(engine.gateway, HttpPersistenceGateway)
        assert engine.gateway.collection_url == 'https://records.example.org/api/asam'
        assert engine.gateway.timeout == 12.0

    @patch('bhportal.views.wizard.HttpPersistenceGateway.save')
    def test_remote_save(self, mock_save, app, client):
        mock_save.return_value = GatewayResult('remote-1', {}, created=True)
        app.config['WIZARD_GATEWAY_URL'] = 'https://records.example.org/api'

        body = post(client, 'asam', 'save_draft').get_json()

        assert body['wizard']['recordId'] == 'remote-1'
        assert db.session.query(AsamAssessment).count() == 0
