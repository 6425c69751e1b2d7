from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseModelWithMethods(BaseModel):
    """Base model for produced records.

    Fields are declared in snake_case and serialised in camelCase, which is the
    shape consumers of the feed expect.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self, **kwargs: Any) -> str:
        kwargs.setdefault("by_alias", True)
        return self.model_dump_json(**kwargs)

    def to_dict(self, **kwargs: Any) -> dict[str, Any]:
        kwargs.setdefault("by_alias", True)
        return self.model_dump(**kwargs)
