"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh-token
- GET  /auth/me

Register and login hand out an access/refresh token pair through the
TokenIssuer; refresh-token exchanges a pair for a new one through the
TokenRotator. Every response of the first three is an AuthResult envelope:
200 on success, 400 on any failure.
"""
from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.exc import SQLAlchemyError

from models.refresh_token_store import StoreError
from models.schemas.user import UserRegistrationSchema, UserLoginSchema, UserOutSchema
from models.schemas.token import TokenRequestSchema
from services.results import AuthResult, ErrorKind
from services.token_issuer import IssuanceFailed
from utils.decorators import jwt_required
from .errors import auth_result_response

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__)

user_registration_schema = UserRegistrationSchema()
user_login_schema = UserLoginSchema()
user_out_schema = UserOutSchema()
token_request_schema = TokenRequestSchema()


def _issue(principal) -> AuthResult:
    try:
        return current_app.extensions["token_issuer"].issue(principal)
    except IssuanceFailed:
        return AuthResult.failure(ErrorKind.ISSUANCE_FAILED)


@bp.post("/register")
def register():
    """
    Register a new user and return a token pair.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
            username: { type: string }
            password: { type: string }
    responses:
      200:
        description: OK (returns accessToken and refreshToken)
      400:
        description: Invalid payload, email in use, or password rejected
    """
    payload = request.get_json(silent=True) or {}
    data = user_registration_schema.load(payload)

    identity = current_app.extensions["identity_store"]
    try:
        if identity.find_by_email(data["email"]):
            return auth_result_response(AuthResult.failure(ErrorKind.EMAIL_IN_USE, ["Email already in use"]))
        user, errors = identity.create_principal(data["email"], data["username"], data["password"])
    except (StoreError, SQLAlchemyError):
        logger.exception("Registration failed for %s", data["email"])
        return auth_result_response(AuthResult.failure(ErrorKind.ISSUANCE_FAILED))
    if user is None:
        return auth_result_response(AuthResult.failure(ErrorKind.PRINCIPAL_REJECTED, errors))

    return auth_result_response(_issue(user))


@bp.post("/login")
def login():
    """
    Login: return accessToken and refreshToken
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      400:
        description: Invalid login request
    """
    payload = request.get_json(silent=True) or {}
    data = user_login_schema.load(payload)

    identity = current_app.extensions["identity_store"]
    try:
        user = identity.find_by_email(data["email"])
    except (StoreError, SQLAlchemyError):
        logger.exception("Login lookup failed")
        return auth_result_response(AuthResult.failure(ErrorKind.ISSUANCE_FAILED))
    if not user or not identity.verify_password(user, data["password"]):
        return auth_result_response(AuthResult.failure(ErrorKind.INVALID_CREDENTIALS))

    return auth_result_response(_issue(user))


@bp.post("/refresh-token")
def refresh_token():
    """
    Exchange an expired access token and its refresh token for a new pair.
    The presented refresh token is consumed and can never be used again.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             accessToken: { type: string }
             refreshToken: { type: string }
    responses:
      200:
        description: OK (returns the new pair)
      400:
        description: Invalid, reused, revoked or expired tokens
    """
    payload = request.get_json(silent=True) or {}
    data = token_request_schema.load(payload)

    rotator = current_app.extensions["token_rotator"]
    result = rotator.rotate(data["access_token"], data["refresh_token"])
    return auth_result_response(result)


@bp.get("/me")
@jwt_required()
def me():
    """
    The principal the presented access token belongs to
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Missing, invalid or expired access token
    """
    return jsonify({"data": user_out_schema.dump(g.current_user)}), 200
