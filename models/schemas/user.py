from marshmallow import Schema, fields, pre_load, validate

def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v

class UserCreateSchema(Schema):
    name = fields.String(required=True, validate=validate.Length(min=1, max=255))
    email = fields.Email(required=True, validate=validate.Length(max=255))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data, email=_norm_email(data["email"]))
        if isinstance(data, dict) and isinstance(data.get("name"), str):
            data = dict(data, name=data["name"].strip())
        return data

class UserLoginSchema(Schema):
    email = fields.String(required=True)
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data, email=_norm_email(data["email"]))
        return data

class UserUpdateSchema(Schema):
    # email and password are not updatable; unknown fields are rejected
    name = fields.String(validate=validate.Length(min=1, max=255))

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get("name"), str):
            data = dict(data, name=data["name"].strip())
        return data

class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    name = fields.String(allow_none=True)
    email = fields.String(allow_none=False)
    created_at = fields.DateTime(allow_none=True)
    updated_at = fields.DateTime(allow_none=True)
