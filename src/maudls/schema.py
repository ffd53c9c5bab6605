from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel


class DiagnosticDTO(BaseModel):
    document: str
    line: int
    start_character: int
    end_character: int
    severity: str
    code: str
    message: str


class LoadErrorDTO(BaseModel):
    path: str
    reason: str
    line: Optional[int] = None


class CheckResponse(BaseModel):
    root: str
    diagnostics: List[DiagnosticDTO] = []
    counts: Dict[str, int] = {}
    errors: List[LoadErrorDTO] = []


class DescribeResponse(BaseModel):
    symbol: str
    found: bool
    uri: Optional[str] = None
    line: Optional[int] = None
    rendered: str = ""
