"""
Records REST API

One blueprint per form type, mounted at ``/api/{collection}``:

- ``GET /`` lists records, optionally filtered with ``?status=``
- ``POST /`` creates a draft or a final submission
- ``GET /<record_id>`` returns one record
- ``PATCH /<record_id>`` edits a draft, or records a reviewer decision when
  the body carries ``status`` and no ``isDraft``

Responses wrap records in the form's record key, e.g. ``{"assessment": {...}}``.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from flask import Blueprint, jsonify, request

from .exceptions import RecordValidationError
from .forms import WIZARDS, WizardDefinition
from .records import RecordService

logger = logging.getLogger(__name__)


class RecordsAPI:
    """
    REST endpoints for the records of one form type

    Args:
        definition: wizard definition of the form type
    """

    def __init__(self, definition: WizardDefinition):
        self.definition = definition
        self.service = RecordService(definition)
        self.blueprint = Blueprint(
            f'{definition.form_type}_records_api', __name__, url_prefix=f'/api/{definition.collection}'
        )
        self._setup_routes()

    def _setup_routes(self):
        self.blueprint.add_url_rule('', 'list_records', self.list_records, methods=['GET'])
        self.blueprint.add_url_rule('', 'create_record', self.create_record, methods=['POST'])
        self.blueprint.add_url_rule('/<record_id>', 'get_record', self.get_record, methods=['GET'])
        self.blueprint.add_url_rule('/<record_id>', 'patch_record', self.patch_record, methods=['PATCH'])

    def _json_body(self) -> Dict[str, Any]:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise RecordValidationError({}, "Invalid input data")
        return data

    def _wrap(self, record) -> Dict[str, Any]:
        return {self.definition.record_key: record.to_dict()}

    def list_records(self):
        records = self.service.list(request.args.get('status'))
        return jsonify({self.definition.collection: [record.to_dict() for record in records]})

    def create_record(self):
        record = self.service.create(self._json_body())
        return jsonify(self._wrap(record)), 201

    def get_record(self, record_id: str):
        return jsonify(self._wrap(self.service.get(record_id)))

    def patch_record(self, record_id: str):
        data = self._json_body()
        if 'status' in data and 'isDraft' not in data:
            logger.debug(f"Decision on {self.definition.form_type} {record_id}: {data['status']}")
            record = self.service.decide(record_id, data['status'], data.get('decisionReason'))
        else:
            record = self.service.update(record_id, data)
        return jsonify(self._wrap(record))


def create_records_blueprints(definitions: Optional[Iterable[WizardDefinition]] = None):
    """Records API blueprints of every registered form type"""
    definitions = WIZARDS.values() if definitions is None else definitions
    return [RecordsAPI(definition).blueprint for definition in definitions]
