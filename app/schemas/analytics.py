from pydantic import BaseModel
from typing import Optional


class ProfileViewSummary(BaseModel):
    """Only the counts for the requested range are filled in."""
    today: Optional[int] = None
    last_7_days: Optional[int] = None
    total: Optional[int] = None
