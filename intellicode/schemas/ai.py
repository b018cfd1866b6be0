from typing import Optional, List, Literal, Dict, Any
from pydantic import BaseModel, Field

SuggestionType = Literal["explain", "refactor", "debug", "optimize", "generate"]

class CodeRequest(BaseModel):
    code: str
    language: str = Field(min_length=1)

class ExplainRequest(CodeRequest):
    pass

class RefactorRequest(CodeRequest):
    context: Optional[str] = None

class CursorLocation(BaseModel):
    line: int = Field(ge=0)
    column: int = Field(ge=0)

class CompleteRequest(CodeRequest):
    position: CursorLocation

class SuggestRequest(CodeRequest):
    type: SuggestionType
    context: Optional[str] = None
    options: Optional[Dict[str, Any]] = None

class ExplainResponse(BaseModel):
    explanation: str
    cached: bool = False

class RefactorResponse(BaseModel):
    refactored_code: str
    cached: bool = False

class CompleteResponse(BaseModel):
    completions: List[str]
    cached: bool = False

class SuggestionMetadata(BaseModel):
    model: str
    tokens: int = 0
    timestamp: str

class SuggestResponse(BaseModel):
    id: str
    type: SuggestionType
    content: str
    suggestions: List[str] = []
    metadata: SuggestionMetadata
    cached: bool = False
