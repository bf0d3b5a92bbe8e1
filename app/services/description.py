import re
from typing import Optional
from app.core.config import settings

def resolve_description(template_description: Optional[str], business_name: str, token: Optional[str] = None) -> str:
    """Replace every case-insensitive business-name token with the business name.

    A missing description resolves to an empty string.
    """
    pattern = re.compile(re.escape(token or settings.BUSINESS_NAME_TOKEN), re.IGNORECASE)
    # Callable replacement so backslashes in the name are kept literally
    return pattern.sub(lambda _: business_name, template_description or "")

def effective_description(override: Optional[str], template_description: Optional[str], business_name: str) -> str:
    """Text shown for a link: the override when set, else the resolved template text."""
    if override is not None:
        return override
    return resolve_description(template_description, business_name)
