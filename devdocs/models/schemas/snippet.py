from marshmallow import Schema, fields, validate, pre_load


def _strip(data, *names):
    if isinstance(data, dict):
        data = dict(data)
        for name in names:
            if isinstance(data.get(name), str):
                data[name] = data[name].strip()
    return data


class SnippetCreateSchema(Schema):
    language = fields.String(required=True, validate=validate.Length(min=1, max=64))
    code = fields.String(required=True, validate=validate.Length(min=1))
    title = fields.String(load_default="", validate=validate.Length(max=255))

    @pre_load
    def normalize(self, data, **kwargs):
        return _strip(data, "language", "title")


class SnippetUpdateSchema(Schema):
    title = fields.String(required=True, validate=validate.Length(min=1, max=255))

    @pre_load
    def normalize(self, data, **kwargs):
        return _strip(data, "title")


class SnippetOutSchema(Schema):
    id = fields.String()
    language = fields.String()
    code = fields.String()
    documentation = fields.String()
    title = fields.String()
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
