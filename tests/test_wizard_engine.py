"""
Tests for the wizard engine: navigation, resuming drafts, draft saving and
final submission
"""

import copy
from unittest.mock import MagicMock, patch

import pytest

from bhportal.config import WizardBehaviorConfig
from bhportal.exceptions import (
    FieldAccessError,
    GatewayError,
    SchemaEvaluationError,
    UnknownFieldPathError,
    WizardBusyError,
    WizardClosedError,
    WizardNavigationError,
)
from bhportal.forms import WizardEngine, WizardEventType
from bhportal.gateway import HttpPersistenceGateway


def event_types(engine):
    return [event.type for event in engine.pop_events()]


def fill_asam_demographics(engine):
    access = engine.form_access(1)
    access.set('patientName', 'Jane Doe')
    access.set('dateOfBirth', '1990-01-01')


class TestInitialize:

    def test_fresh_wizard(self, asam, gateway):
        engine = WizardEngine(asam, gateway)

        assert engine.current_step == 1
        assert engine.total_steps == 8
        assert engine.field_errors == {}
        assert engine.form_state['preferredLanguage'] == 'English'
        assert engine.record_id is None

    def test_resume_at_draft_step(self, asam, gateway):
        engine = WizardEngine(asam, gateway, initial_data={
            'draftStep': 5,
            'dimension1Severity': 2,
            'patientName': 'Jane Doe',
        })

        assert engine.current_step == 5
        assert engine.form_state['dimension1Severity'] == 2
        assert engine.form_state['patientName'] == 'Jane Doe'

    @pytest.mark.parametrize('draft_step', [99, 0, -3, '5', 2.0, True, None])
    def test_draft_step_out_of_range(self, asam, gateway, draft_step):
        engine = WizardEngine(asam, gateway, initial_data={'draftStep': draft_step})

        assert engine.current_step == 1

    def test_missing_draft_step(self, intake, gateway):
        engine = WizardEngine(intake, gateway, initial_data={'residentName': 'John Roe'})

        assert engine.current_step == 1
        assert engine.form_state['residentName'] == 'John Roe'

    def test_dates_are_normalized(self, asam, gateway):
        engine = WizardEngine(asam, gateway, initial_data={
            'dateOfBirth': '1990-01-01T00:00:00.000Z',
            'admissionDate': 'yesterday',
        })

        assert engine.form_state['dateOfBirth'] == '1990-01-01'
        assert engine.form_state['admissionDate'] == ''

    def test_unknown_and_mismatched_values_are_ignored(self, asam, gateway):
        engine = WizardEngine(asam, gateway, initial_data={
            'notAField': 'x',
            'patientName': None,
            'okayToLeaveVoicemail': 'yes',
            'substanceUseHistory': 'none',
            'medicalConditions': ['diabetes'],
            'gender': {'value': 'F'},
        })
        defaults = asam.make_defaults()

        assert 'notAField' not in engine.form_state
        for key in ('patientName', 'okayToLeaveVoicemail', 'substanceUseHistory', 'medicalConditions', 'gender'):
            assert engine.form_state[key] == defaults[key]

    def test_groups_merge_over_defaults(self, intake, gateway):
        engine = WizardEngine(intake, gateway, initial_data={'signatures': {'clientSignature': 'John Roe'}})

        signatures = engine.form_state['signatures']
        assert signatures['clientSignature'] == 'John Roe'
        assert 'assessorSignatureDate' in signatures

    def test_retired_checkbox_does_not_block_resumed_step(self, asam, gateway):
        engine = WizardEngine(asam, gateway, initial_data={
            'draftStep': 3,
            'medicalConditions': {'diabetes': True, 'oldCheckbox': True},
        })

        assert engine.form_state['medicalConditions'] == {'diabetes': True}
        assert engine.advance() is True
        assert engine.current_step == 4
        assert engine.field_errors == {}

    def test_retired_row_column_does_not_block_resumed_step(self, asam, gateway):
        engine = WizardEngine(asam, gateway, initial_data={
            'draftStep': 2,
            'substanceUseHistory': [{'substance': 'Alcohol', 'legacyColumn': 'x'}],
        })

        assert engine.form_state['substanceUseHistory'] == [{'substance': 'Alcohol'}]
        assert engine.advance() is True
        assert engine.current_step == 3

    def test_retired_keys_stay_unwritable(self, asam, gateway):
        engine = WizardEngine(asam, gateway, initial_data={
            'draftStep': 3,
            'medicalConditions': {'oldCheckbox': True},
        })

        with pytest.raises(UnknownFieldPathError):
            engine.form_access().set('medicalConditions.oldCheckbox', False)

    def test_initialize_is_repeatable(self, asam, gateway):
        engine = WizardEngine(asam, gateway)
        defaults = asam.make_defaults()
        initial_data = {'draftStep': 3, 'patientName': 'Jane Doe', 'substanceUseHistory': [{'substance': 'Alcohol'}]}

        engine.initialize(defaults, initial_data)
        first = (copy.deepcopy(engine.form_state), engine.current_step)
        engine.advance()
        engine.initialize(defaults, initial_data)

        assert (engine.form_state, engine.current_step) == first
        assert engine.field_errors == {}

    def test_initialize_does_not_alias_inputs(self, asam, gateway):
        rows = [{'substance': 'Alcohol'}]
        engine = WizardEngine(asam, gateway, initial_data={'substanceUseHistory': rows})

        engine.form_state['substanceUseHistory'][0]['substance'] = 'Cannabis'

        assert rows == [{'substance': 'Alcohol'}]


class TestNavigation:

    def test_advance_blocked_by_required_fields(self, asam, gateway):
        engine = WizardEngine(asam, gateway)

        assert engine.advance() is False
        assert engine.current_step == 1
        assert set(engine.field_errors) == {'patientName', 'dateOfBirth'}
        assert event_types(engine) == []

    def test_advance_when_valid(self, asam, gateway):
        engine = WizardEngine(asam, gateway)
        fill_asam_demographics(engine)

        assert engine.advance() is True
        assert engine.current_step == 2
        assert engine.field_errors == {}
        assert event_types(engine) == [WizardEventType.SCROLL_TO_TOP]

    def test_fixing_a_step_clears_its_errors(self, asam, gateway):
        engine = WizardEngine(asam, gateway)
        engine.advance()
        fill_asam_demographics(engine)

        assert engine.validate_step(1) is True
        assert engine.field_errors == {}

    def test_validate_step_keeps_other_steps_errors(self, asam, gateway):
        engine = WizardEngine(asam, gateway, initial_data={'draftStep': 2, 'dimension2Severity': 7})
        engine.validate_step(3)
        fill_asam_demographics(engine)

        engine.validate_step(1)

        assert engine.field_errors == {'dimension2Severity': "Severity rating must be between 0 and 4"}

    def test_advance_never_skips_a_failing_step(self, asam, gateway):
        for severity in (None, 0, 4, 5, -1):
            engine = WizardEngine(asam, gateway, initial_data={'draftStep': 2, 'dimension1Severity': severity})
            valid = engine.validate_step(2)
            engine.state.field_errors = {}

            moved = engine.advance()

            assert moved is valid
            assert engine.current_step == (3 if valid else 2)
            if not valid:
                assert any(path.startswith('dimension1Severity') for path in engine.field_errors)

    def test_advance_on_last_step_stays(self, asam, gateway):
        engine = WizardEngine(asam, gateway, initial_data={'draftStep': 8})

        assert engine.advance() is True
        assert engine.current_step == 8

    def test_retreat(self, asam, gateway):
        engine = WizardEngine(asam, gateway, initial_data={'draftStep': 3, 'dimension2Severity': 7})
        engine.validate_step(3)

        assert engine.retreat() is True
        assert engine.current_step == 2
        assert 'dimension2Severity' in engine.field_errors
        assert event_types(engine) == [WizardEventType.SCROLL_TO_TOP]

    def test_retreat_on_first_step(self, asam, gateway):
        engine = WizardEngine(asam, gateway)

        assert engine.retreat() is False
        assert engine.current_step == 1
        assert event_types(engine) == []

    def test_validate_unknown_step(self, asam, gateway):
        engine = WizardEngine(asam, gateway)

        with pytest.raises(WizardNavigationError):
            engine.validate_step(9)

    def test_schema_crash_changes_nothing(self, asam, gateway):
        engine = WizardEngine(asam, gateway)
        engine.advance()
        errors = dict(engine.field_errors)

        with patch.object(engine.registry, 'validate_step', side_effect=SchemaEvaluationError()):
            with pytest.raises(SchemaEvaluationError):
                engine.advance()

        assert engine.current_step == 1
        assert engine.field_errors == errors

    def test_progress(self, intake, gateway):
        engine = WizardEngine(intake, gateway, initial_data={'draftStep': 11})
        progress = engine.progress()

        assert progress.caption == "Step 11 of 17: PHQ-9"
        assert progress.percentage == 65
        assert progress.step_statuses()[9]['status'] == 'completed'
        assert progress.step_statuses()[10]['status'] == 'current'
        assert progress.step_statuses()[11]['status'] == 'pending'


class TestStepFormAccess:

    def test_set_and_get(self, asam, gateway):
        access = WizardEngine(asam, gateway).form_access(3)

        access.set('medicalConditions.diabetes', True)

        assert access.get('medicalConditions') == {'diabetes': True}

    def test_cannot_write_other_steps(self, asam, gateway):
        access = WizardEngine(asam, gateway).form_access(1)

        with pytest.raises(FieldAccessError):
            access.set('dimension1Severity', 2)

    def test_misspelled_path(self, asam, gateway):
        access = WizardEngine(asam, gateway).form_access(1)

        with pytest.raises(UnknownFieldPathError):
            access.set('patientNmae', 'Jane')

    def test_repeated_groups(self, intake, gateway):
        engine = WizardEngine(intake, gateway)
        access = engine.form_access(6)

        first = access.append_row('medications', {'name': 'Sertraline'})
        second = access.append_row('medications')
        access.set('medications.1.name', 'Lithium')
        access.remove_row('medications', first)

        assert (first, second) == (0, 1)
        assert engine.form_state['medications'] == [{'name': 'Lithium'}]
        with pytest.raises(IndexError):
            access.remove_row('medications', 5)

    def test_errors_of_step(self, intake, gateway):
        engine = WizardEngine(intake, gateway, initial_data={'medications': [{'name': ''}]})
        engine.validate_step(1)
        engine.validate_step(6)

        access = engine.form_access(6)

        assert access.errors() == {'medications.0.name': "Medication name is required"}
        assert access.error_for('medications.0.name') == "Medication name is required"
        assert access.error_for('allergies') is None


class TestSaveDraft:

    def test_first_save_creates(self, asam, gateway):
        engine = WizardEngine(asam, gateway, initial_data={'draftStep': 4})

        outcome = engine.save_draft()

        assert outcome.success is True
        assert outcome.created is True
        assert engine.record_id == 'rec-1'
        record_id, payload = gateway.save.call_args[0]
        assert record_id is None
        assert payload['isDraft'] is True
        assert payload['currentStep'] == 4
        assert outcome.notification.title == "Draft Saved"
        assert engine.pop_events()[0].to_dict() == {'type': 'record_created', 'recordId': 'rec-1'}

    def test_later_saves_update(self, asam, gateway):
        engine = WizardEngine(asam, gateway)
        engine.save_draft()
        engine.pop_events()

        outcome = engine.save_draft()

        assert outcome.created is False
        assert gateway.save.call_args[0][0] == 'rec-1'
        assert engine.pop_events() == []

    def test_draft_skips_validation(self, asam, gateway):
        engine = WizardEngine(asam, gateway, initial_data={'dimension1Severity': 9})

        assert engine.save_draft().success is True
        assert engine.field_errors == {}

    @patch('bhportal.gateway.requests.request')
    def test_server_error_keeps_form(self, mock_request, asam):
        mock_request.return_value = MagicMock(status_code=500, json=MagicMock(return_value={'error': 'db unavailable'}))
        gateway = HttpPersistenceGateway('https://portal.example.org/api', 'asam', 'assessment')
        engine = WizardEngine(asam, gateway)
        fill_asam_demographics(engine)
        engine.form_access(2).append_row('substanceUseHistory', {'substance': 'Alcohol'})
        before = copy.deepcopy(engine.form_state)

        outcome = engine.save_draft()

        assert outcome.success is False
        assert engine.state.is_saving_draft is False
        assert outcome.notification.level == 'error'
        assert outcome.notification.message == 'db unavailable'
        assert engine.form_state == before
        assert engine.record_id is None

    def test_failure_without_server_message(self, asam, gateway):
        gateway.save.side_effect = GatewayError()
        engine = WizardEngine(asam, gateway)

        outcome = engine.save_draft()

        assert outcome.notification.message == "Failed to save draft"

    def test_gateway_cannot_mutate_form(self, asam, gateway):
        def mutate(record_id, payload):
            payload['patientName'] = 'Changed'
            payload['substanceUseHistory'].append({'substance': 'x'})
            raise GatewayError("nope")

        gateway.save.side_effect = mutate
        engine = WizardEngine(asam, gateway)
        before = copy.deepcopy(engine.form_state)

        engine.save_draft()

        assert engine.form_state == before

    def test_flags_are_exclusive(self, asam, gateway):
        engine = WizardEngine(asam, gateway, initial_data={'draftStep': 8})
        seen = []

        def save(record_id, payload):
            seen.append((engine.state.is_saving_draft, engine.state.is_submitting))
            with pytest.raises(WizardBusyError):
                engine.save_draft()
            with pytest.raises(WizardBusyError):
                engine.submit()
            return MagicMock(record_id='rec-1')

        gateway.save.side_effect = save
        engine.save_draft()

        assert seen == [(True, False)]
        assert (engine.state.is_saving_draft, engine.state.is_submitting) == (False, False)


class TestSubmit:

    def test_submit_only_from_last_step(self, asam, gateway):
        engine = WizardEngine(asam, gateway, initial_data={'draftStep': 7})

        with pytest.raises(WizardNavigationError):
            engine.submit()
        gateway.save.assert_not_called()

    def test_intake_without_client_signature(self, intake, intake_form, gateway):
        intake_form['signatures']['clientSignature'] = ''
        intake_form['draftStep'] = 17
        engine = WizardEngine(intake, gateway, initial_data=intake_form)

        outcome = engine.submit()

        assert outcome.success is False
        assert engine.field_errors['signatures.clientSignature'] == "Client signature is required"
        assert engine.state.error_steps == [17]
        assert outcome.notification.message == "Please correct the errors on step(s) 17 before submitting."
        gateway.save.assert_not_called()
        assert not engine.is_done

    def test_rejected_submission_reports_steps(self, asam, gateway):
        engine = WizardEngine(asam, gateway, initial_data={'draftStep': 8, 'suicidalThoughts': True})

        outcome = engine.submit()

        assert engine.state.error_steps == [1, 4, 8]
        assert set(outcome.field_errors) == {'patientName', 'dateOfBirth', 'suicidalThoughtsDetails', 'counselorName'}
        assert engine.current_step == 8

    def test_navigate_to_first_error(self, asam, gateway):
        behavior = WizardBehaviorConfig(navigate_to_first_error=True)
        engine = WizardEngine(asam, gateway, behavior=behavior, initial_data={'draftStep': 8})

        engine.submit()

        assert engine.current_step == 1
        assert event_types(engine) == [WizardEventType.SCROLL_TO_TOP]

    def test_successful_submission(self, asam, asam_form, gateway):
        asam_form['draftStep'] = 8
        engine = WizardEngine(asam, gateway, record_id='rec-9', initial_data=asam_form)

        outcome = engine.submit()

        assert outcome.success is True
        assert outcome.created is False
        assert engine.is_done
        record_id, payload = gateway.save.call_args[0]
        assert record_id == 'rec-9'
        assert payload['isDraft'] is False
        assert 'currentStep' not in payload
        assert outcome.notification.title == "ASAM Assessment Submitted"
        assert [event.to_dict() for event in engine.pop_events()] == [{'type': 'submitted', 'recordId': 'rec-9'}]

    def test_closed_after_submission(self, asam, asam_form, gateway):
        asam_form['draftStep'] = 8
        engine = WizardEngine(asam, gateway, initial_data=asam_form)
        engine.submit()

        for operation in (engine.advance, engine.retreat, engine.save_draft, engine.submit):
            with pytest.raises(WizardClosedError):
                operation()
        with pytest.raises(WizardClosedError):
            engine.form_access(1).set('patientName', 'Other')

    def test_failed_submission_keeps_form(self, intake, intake_form, gateway):
        gateway.save.side_effect = GatewayError("Invalid input data", status=400)
        intake_form['draftStep'] = 17
        engine = WizardEngine(intake, gateway, initial_data=intake_form)
        before = copy.deepcopy(engine.form_state)

        outcome = engine.submit()

        assert outcome.success is False
        assert outcome.notification.message == "Invalid input data"
        assert engine.form_state == before
        assert engine.state.is_submitting is False
        assert not engine.is_done

    def test_failed_submission_default_message(self, intake, intake_form, gateway):
        gateway.save.side_effect = GatewayError()
        intake_form['draftStep'] = 17
        engine = WizardEngine(intake, gateway, initial_data=intake_form)

        assert engine.submit().notification.message == "Failed to submit intake"


class TestSerialization:

    def test_to_dict(self, asam, gateway):
        engine = WizardEngine(asam, gateway, initial_data={'draftStep': 2})

        data = engine.to_dict()

        assert data['formType'] == 'asam'
        assert data['currentStep'] == 2
        assert data['totalSteps'] == 8
        assert data['progress']['caption'] == "Step 2 of 8: Substance Use"
        assert data['formState']['preferredLanguage'] == 'English'
        assert data['done'] is False
