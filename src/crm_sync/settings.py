"""Runtime settings shared by transports and engines."""

from pydantic import BaseModel, Field

DEFAULT_BASE_URL = "http://localhost:5000/api"


class SyncSettings(BaseModel):
    """Connection and timing settings.

    Example:
        >>> settings = SyncSettings(base_url="https://crm.example.com/api")
        >>> settings.search_debounce
        0.5
    """

    base_url: str = DEFAULT_BASE_URL
    timeout: int = Field(default=30, gt=0)
    token: str | None = None
    page_size: int = Field(default=20, gt=0)
    search_debounce: float = Field(default=0.5, ge=0)
    filter_debounce: float = Field(default=0.3, ge=0)
    reference_limit: int = Field(default=1000, gt=0)
