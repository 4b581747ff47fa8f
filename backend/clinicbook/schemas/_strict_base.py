"""Request body base: unknown fields are a 422, never silently dropped."""

from pydantic import BaseModel, ConfigDict


class StrictRequestModel(BaseModel):
    """
    Base for every request body.

    A misspelled field (say `start_tme`) or one the API does not accept
    (say a client-side `discount`) is rejected instead of ignored.
    Surrounding whitespace is trimmed from strings.
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)
