from marshmallow import Schema, fields, pre_load, validate, ValidationError, EXCLUDE


def _not_blank(value):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Field cannot be blank.")


def _strip(data, keys):
    if not isinstance(data, dict):
        return data
    data = dict(data)
    for key in keys:
        if isinstance(data.get(key), str):
            data[key] = data[key].strip()
    return data


class UserRegisterSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    full_name = fields.String(required=True, data_key="fullName", validate=_not_blank)
    email = fields.Email(required=True, validate=_not_blank)
    username = fields.String(required=True, validate=[_not_blank, validate.Length(max=64)])
    password = fields.String(required=True, load_only=True, validate=_not_blank)

    @pre_load
    def normalize(self, data, **kwargs):
        # password is checked for blankness but kept verbatim
        data = _strip(data, ("fullName", "email", "username"))
        for key in ("email", "username"):
            if isinstance(data, dict) and isinstance(data.get(key), str):
                data[key] = data[key].lower()
        return data


class UserLoginSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    username = fields.String(load_default=None)
    email = fields.String(load_default=None)
    password = fields.String(load_default=None, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        data = _strip(data, ("username", "email"))
        for key in ("email", "username"):
            if isinstance(data, dict) and isinstance(data.get(key), str):
                data[key] = data[key].lower() or None
        return data


class UserOutSchema(Schema):
    """Public projection of a user: never the password hash or refresh token."""
    id = fields.String(allow_none=False)
    username = fields.String()
    email = fields.String()
    full_name = fields.String(data_key="fullName")
    avatar = fields.String()
    cover_image = fields.String(data_key="coverImage")
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
