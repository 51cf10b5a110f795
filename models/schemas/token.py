from marshmallow import Schema, fields, validate


class TokenRequestSchema(Schema):
    access_token = fields.String(required=True, data_key="accessToken", validate=validate.Length(min=1))
    refresh_token = fields.String(required=True, data_key="refreshToken", validate=validate.Length(min=1))


class AuthResultSchema(Schema):
    access_token = fields.String(allow_none=True, data_key="accessToken")
    refresh_token = fields.String(allow_none=True, data_key="refreshToken")
    success = fields.Boolean()
    errors = fields.List(fields.String())
