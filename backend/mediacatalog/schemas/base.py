from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase JSON. Accepts either on input."""

    model_config = {
        "from_attributes": True,
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


def reject_null(value):
    # Only reached when the client sent the field explicitly.
    if value is None:
        raise ValueError("may not be null")
    return value
