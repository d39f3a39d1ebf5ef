"""
Wizard Form Views

Page shells and JSON endpoints for the ASAM and intake wizards. The JSON
endpoints are stateless: each request carries the wizard's ``recordId``,
``currentStep``, ``formState`` and ``fieldErrors``, the view rebuilds an
engine from them, runs one operation and answers with the new state.
"""

import logging
from typing import Any, Dict, Optional

from flask import Blueprint, current_app, jsonify, render_template, request, url_for

from ..config import WizardBehaviorConfig
from ..exceptions import RecordLockedError, RecordValidationError
from ..forms import ASAM_WIZARD, INTAKE_WIZARD, WizardDefinition, WizardEngine
from ..gateway import HttpPersistenceGateway, PersistenceGateway
from ..records import LocalPersistenceGateway, RecordService

logger = logging.getLogger(__name__)


class WizardFormView:
    """
    Base view class for wizard forms

    Subclasses set ``definition``; the view registers its routes on its own
    blueprint under ``/wizard/<form_type>``.
    """

    definition: WizardDefinition = None
    wizard_template = 'wizard/wizard_form.html'

    def __init__(self):
        if self.definition is None:
            raise ValueError("definition must be specified")
        self.blueprint = Blueprint(
            f'{self.definition.form_type}_wizard', __name__,
            url_prefix=f'/wizard/{self.definition.form_type}',
        )
        self._setup_routes()

    def _setup_routes(self):
        self.blueprint.add_url_rule('/new', 'new', self.new, methods=['GET'])
        self.blueprint.add_url_rule('/<record_id>/edit', 'edit', self.edit, methods=['GET'])

        self.blueprint.add_url_rule('/api/validate_step', 'validate_step_api', self.validate_step_api, methods=['POST'])
        self.blueprint.add_url_rule('/api/advance', 'advance_api', self.advance_api, methods=['POST'])
        self.blueprint.add_url_rule('/api/retreat', 'retreat_api', self.retreat_api, methods=['POST'])
        self.blueprint.add_url_rule('/api/save_draft', 'save_draft_api', self.save_draft_api, methods=['POST'])
        self.blueprint.add_url_rule('/api/submit', 'submit_api', self.submit_api, methods=['POST'])
        self.blueprint.add_url_rule('/api/status', 'status_api', self.status_api, methods=['GET'])

    # ------------------------------------------------------------------
    # Engine construction
    # ------------------------------------------------------------------

    def _behavior(self) -> WizardBehaviorConfig:
        return WizardBehaviorConfig.from_app_config(current_app.config)

    def _create_gateway(self, behavior: WizardBehaviorConfig) -> PersistenceGateway:
        """Records API of this application unless ``WIZARD_GATEWAY_URL`` points elsewhere"""
        if behavior.gateway_url:
            return HttpPersistenceGateway(
                behavior.gateway_url,
                self.definition.collection,
                self.definition.record_key,
                timeout=behavior.gateway_timeout,
            )
        return LocalPersistenceGateway(self.definition)

    def _create_engine(self,
                       record_id: Optional[str] = None,
                       initial_data: Optional[Dict[str, Any]] = None) -> WizardEngine:
        behavior = self._behavior()
        return WizardEngine(
            self.definition,
            self._create_gateway(behavior),
            record_id=record_id,
            behavior=behavior,
            initial_data=initial_data,
        )

    def _engine_from_request(self) -> WizardEngine:
        """Rebuild the engine described by the JSON body of the request"""
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not isinstance(data.get('formState', {}), dict):
            raise RecordValidationError({}, "Invalid input data")

        record_id = data.get('recordId')
        if record_id is not None and not isinstance(record_id, str):
            raise RecordValidationError({'recordId': "Invalid record id"})

        initial_data = dict(data.get('formState') or {})
        initial_data['draftStep'] = data.get('currentStep', 1)
        engine = self._create_engine(record_id=record_id, initial_data=initial_data)

        field_errors = data.get('fieldErrors')
        if isinstance(field_errors, dict):
            engine.state.field_errors = {
                str(path): message for path, message in field_errors.items() if isinstance(message, str)
            }
        return engine

    def _respond(self, engine: WizardEngine, success: bool, **extra: Any):
        body = {
            'success': success,
            'wizard': engine.to_dict(),
            'events': [event.to_dict() for event in engine.pop_events()],
            'notification': engine.notification.to_dict() if engine.notification else None,
        }
        body.update(extra)
        return jsonify(body)

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    def new(self):
        """Blank wizard"""
        return self._render_wizard_form(self._create_engine())

    def edit(self, record_id: str):
        """Resume a saved draft at the step it was saved on"""
        service = RecordService(self.definition)
        record = service.get(record_id)
        if not record.is_draft:
            raise RecordLockedError(record_id=record_id)
        engine = self._create_engine(record_id=record.id, initial_data=service.to_initial_data(record))
        logger.info(f"Resuming {self.definition.form_type} draft {record.id} at step {engine.current_step}")
        return self._render_wizard_form(engine)

    def _render_wizard_form(self, engine: WizardEngine) -> str:
        """Render the wizard page shell"""
        progress = engine.progress()
        template_vars = {
            'wizard_title': self.definition.title,
            'wizard': engine.to_dict(),
            'progress': progress,
            'step_statuses': progress.step_statuses(),
            'steps': [step.to_dict() for step in engine.registry.steps],
            'api_urls': {
                name: url_for(f'{self.blueprint.name}.{name}_api')
                for name in ('validate_step', 'advance', 'retreat', 'save_draft', 'submit', 'status')
            },
        }
        return render_template(self.wizard_template, **template_vars)

    # ------------------------------------------------------------------
    # JSON endpoints
    # ------------------------------------------------------------------

    def validate_step_api(self):
        """Validate one step; ``step`` defaults to the current one"""
        engine = self._engine_from_request()
        step = (request.get_json(silent=True) or {}).get('step', engine.current_step)
        valid = engine.validate_step(step)
        return self._respond(engine, valid, step=step)

    def advance_api(self):
        engine = self._engine_from_request()
        return self._respond(engine, engine.advance())

    def retreat_api(self):
        engine = self._engine_from_request()
        return self._respond(engine, engine.retreat())

    def save_draft_api(self):
        engine = self._engine_from_request()
        outcome = engine.save_draft()
        return self._respond(engine, outcome.success, outcome=outcome.to_dict())

    def submit_api(self):
        engine = self._engine_from_request()
        outcome = engine.submit()
        return self._respond(engine, outcome.success, outcome=outcome.to_dict())

    def status_api(self):
        """Initial state of a blank wizard, or of the draft named by ``?record_id=``"""
        record_id = request.args.get('record_id')
        if not record_id:
            return self._respond(self._create_engine(), True)
        service = RecordService(self.definition)
        record = service.get(record_id)
        engine = self._create_engine(record_id=record.id, initial_data=service.to_initial_data(record))
        return self._respond(engine, True, status=record.status.value)


class AsamWizardView(WizardFormView):
    definition = ASAM_WIZARD


class IntakeWizardView(WizardFormView):
    definition = INTAKE_WIZARD
