from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import Schema, fields, validate

from ifimgone.services import get_contact_verification_service
from ifimgone.utils.validators import validate_request_json

contacts_bp = Blueprint('contacts', __name__)


class VerifyContactSchema(Schema):
    token = fields.Str(required=True, validate=validate.Length(min=1))


@contacts_bp.route('/<int:contact_id>/verification', methods=['POST'])
@jwt_required()
def request_verification(contact_id):
    """Owner (re)sends the verification link to one of their trusted contacts"""
    user_id = int(get_jwt_identity())
    result = get_contact_verification_service().request_verification(user_id, contact_id)
    return jsonify({'success': True, **result}), 200


@contacts_bp.route('/verify', methods=['POST'])
@validate_request_json(VerifyContactSchema())
def verify_contact():
    """
    Trusted contact follows the emailed link.

    The release key in the response is shown once; only its hash is kept.
    """
    result = get_contact_verification_service().verify(request.validated_data['token'])
    return jsonify({'success': True, **result}), 200
