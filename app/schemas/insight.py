# schemas/insight.py
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class InsightSection(BaseModel):
    """One paragraph of the insight report."""
    key: str
    title: str
    message: str
    sufficient: bool = Field(..., description="False when the canned not-enough-data text was used")
    stats: Dict[str, Any] = Field(default_factory=dict)


class InsightReport(BaseModel):
    start: Optional[date] = None
    end: Optional[date] = None
    entry_count: int = 0
    full_charge_count: int = 0
    sections: List[InsightSection] = Field(default_factory=list)

    def section(self, key: str) -> InsightSection:
        for section in self.sections:
            if section.key == key:
                return section
        raise KeyError(key)

    def to_text(self) -> str:
        """Plain-text rendering, one titled paragraph per section."""
        blocks = []
        for section in self.sections:
            blocks.append(f"【{section.title}】\n{section.message}")
        return "\n\n".join(blocks)


class InsightReportResponse(InsightReport):
    text: str
