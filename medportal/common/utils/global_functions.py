# common/utils/global_functions.py
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from pydantic import ValidationError as PydanticValidationError

from medportal.common.errors import StoreError
from medportal.common.utils.global_messages import GlobalMessages

logger = logging.getLogger(__name__)

T = TypeVar("T")


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string, the tree's timestamp format."""
    return datetime.now(timezone.utc).isoformat()


def today_iso() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a stored date or timestamp; naive values are taken as UTC."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def load_document(model: Type[T], key: str, data: Dict[str, Any]) -> T:
    """
    Validate one stored document into `model`. A document the model cannot
    hold raises StoreError rather than pydantic's own error.
    """
    try:
        return model.model_validate({**data, "id": key})
    except PydanticValidationError as e:
        logger.warning("Stored %s %s is malformed: %s", model.__name__, key, e)
        raise StoreError(GlobalMessages.MALFORMED_RECORD) from e


def collection_to_list(
    collection: Optional[Dict[str, Any]],
    model: Type[T],
    where: Optional[Callable[[Dict[str, Any]], bool]] = None,
) -> List[T]:
    """
    Turn a `{key: document}` collection read into models carrying their id.

    `where` filters the raw documents before they are validated. Documents the
    model cannot hold are logged and left out of the result.
    """
    items = []
    for key, data in (collection or {}).items():
        if not isinstance(data, dict) or (where is not None and not where(data)):
            continue
        try:
            items.append(model.model_validate({**data, "id": key}))
        except PydanticValidationError as e:
            logger.warning("Skipping malformed %s %s: %s", model.__name__, key, e)
    return items


def blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
