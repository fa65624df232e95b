"""
Session Log Record Model
Pydantic model for one fix attempt written to the append-only session log.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from .test_verdict import TestVerdict


class SessionLogRecord(BaseModel):
    position: str
    corrected_code: str
    applied: bool
    pre_fix_verdict: Optional[TestVerdict] = None
    post_fix_verdict: Optional[TestVerdict] = None
    timestamp: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def _post_requires_applied(self) -> "SessionLogRecord":
        if self.post_fix_verdict is not None and not self.applied:
            raise ValueError("post-fix verdict is only recorded for applied fixes")
        return self
