from flask import Blueprint, request, jsonify, current_app
from marshmallow import Schema, fields, validate

from ifimgone.services import get_release_service
from ifimgone.utils.validators import validate_request_json

releases_bp = Blueprint('releases', __name__)


class ReleaseRequestSchema(Schema):
    contact_id = fields.Int(required=True)
    release_key = fields.Str(required=True, validate=validate.Length(min=1))
    message_ids = fields.List(fields.Int(), load_default=None)
    reason = fields.Str(load_default=None, validate=validate.Length(max=500))


@releases_bp.route('', methods=['POST'])
@validate_request_json(ReleaseRequestSchema())
def release_messages():
    """Trusted contact releases the owner's manual messages (authenticated by release key)"""
    data = request.validated_data

    # ReleaseNotAuthorizedError is mapped to 403 by the error handlers
    result = get_release_service().release_messages(
        data['contact_id'],
        data['release_key'],
        message_ids=data['message_ids'],
        reason=data['reason']
    )
    current_app.logger.info(
        f"Release by trusted contact {data['contact_id']}: "
        f"{len(result['released_message_ids'])} released"
    )
    return jsonify(result), 200
