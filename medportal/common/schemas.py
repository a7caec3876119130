# medportal/common/schemas.py
"""Base pydantic model for documents kept in the shared tree."""

from typing import Any, Dict

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class PortalDocument(BaseModel):
    """
    Stored documents use camelCase keys (`firstName`, `prescribedDate`), the
    Python side uses snake_case. Unknown keys are kept: the tree is
    schema-less and older clients may have written fields we do not model.
    """

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "allow"

    def to_document(self) -> Dict[str, Any]:
        """Serialise back to the stored shape, without the `id` key."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        data.pop("id", None)
        return data
